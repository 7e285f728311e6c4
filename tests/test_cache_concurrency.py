import unittest
import tempfile
import os
import threading

from storage.cache import BuildCache


class TestBuildCacheConcurrency(unittest.TestCase):
    def test_concurrent_put_get_no_corruption(self):
        tmp = tempfile.NamedTemporaryFile(delete=False)
        path = tmp.name
        tmp.close()
        cache = BuildCache(path)
        try:
            num_threads = 8
            builds_per_thread = 50
            errors = []

            def worker(thread_idx):
                try:
                    for i in range(builds_per_thread):
                        url = f"https://ci/job/t{thread_idx}/{i}/"
                        cache.put(url, {'number': i, 'result': 'FAILURE', 'url': url})
                        record = cache.get(url)
                        if record is None or record.get('number') != i:
                            errors.append((thread_idx, i))
                except Exception as ex:
                    errors.append(('exc', thread_idx, str(ex)))

            threads = [threading.Thread(target=worker, args=(ti,)) for ti in range(num_threads)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

            self.assertEqual(len(errors), 0, f"Errors occurred in threads: {errors}")
            self.assertEqual(cache.count(), num_threads * builds_per_thread)
        finally:
            cache.close()
            try:
                os.remove(path)
            except OSError:
                pass


if __name__ == '__main__':
    unittest.main()
