"""
Tests for the build-step integration: gating, delivery outcome and error policy.
"""
import json
import logging
import unittest
from unittest.mock import Mock

import requests

from config import NotifierConfig
from models import BuildResult, ChangeLogEntry, Payload
from notify.notifier import CloudAEyeNotifier, PayloadAssemblyError
from runs.base import ChangeSetRun


class StubRun(ChangeSetRun):
    def __init__(self, number=5, result=BuildResult.FAILURE, log_error=None):
        super().__init__('api', 'job/api/', number, f'job/api/{number}/', 0, result)
        self.log_error = log_error

    def get_environment(self):
        return {'GIT_BRANCH': 'main', 'GIT_COMMIT': 'abc'}

    def get_log_text(self):
        if self.log_error:
            raise self.log_error
        return 'Started\nFinished: FAILURE\n'

    def get_previous_build(self):
        return None

    def get_change_sets(self):
        return [[ChangeLogEntry('fix', 'abc', 'jdoe', 1, ['a.py'])]]


def make_sender(status=200, text='ok', error=None):
    sender = Mock()
    if error is not None:
        sender.send.side_effect = error
    else:
        resp = Mock()
        resp.status_code = status
        resp.text = text
        sender.send.return_value = resp
    return sender


class TestCloudAEyeNotifier(unittest.TestCase):
    def setUp(self):
        self.config = NotifierConfig('T123', 'tok')

    def test_disabled_export_skips(self):
        sender = make_sender()
        notifier = CloudAEyeNotifier(self.config, enable_export=False, sender=sender)
        self.assertIsNone(notifier.perform(StubRun()))
        sender.send.assert_not_called()

    def test_other_results_are_skipped(self):
        for result in (BuildResult.UNSTABLE, BuildResult.ABORTED, BuildResult.NOT_BUILT, None):
            sender = make_sender()
            notifier = CloudAEyeNotifier(self.config, sender=sender)
            self.assertIsNone(notifier.perform(StubRun(result=result)))
            sender.send.assert_not_called()

    def test_success_response(self):
        sender = make_sender(200)
        notifier = CloudAEyeNotifier(self.config, sender=sender)
        self.assertTrue(notifier.perform(StubRun(), now_ms=1000))
        details, tenant_key, token = sender.send.call_args[0]
        self.assertEqual(tenant_key.get_plain_text(), 'T123')
        self.assertEqual(token.get_plain_text(), 'tok')
        doc = json.loads(details)
        self.assertEqual(doc['job']['buildNumber'], 5)
        self.assertEqual(doc['job']['logs'], ['Started', 'Finished: FAILURE'])
        self.assertEqual(doc['source']['eventType'], 'PUSH')
        # no earlier successful run, so a failure reports no change log
        self.assertEqual(doc['source']['changeLog'], [])

    def test_error_response_is_logged_not_raised(self):
        notifier = CloudAEyeNotifier(self.config, sender=make_sender(500, 'boom'))
        with self.assertLogs('notify.notifier', level=logging.ERROR) as logs:
            self.assertFalse(notifier.perform(StubRun()))
        self.assertIn('[#5]', logs.output[0])
        self.assertIn('boom', logs.output[0])

    def test_transport_error_is_logged_not_raised(self):
        notifier = CloudAEyeNotifier(self.config, sender=make_sender(error=requests.ConnectionError('refused')))
        with self.assertLogs('notify.notifier', level=logging.ERROR):
            self.assertFalse(notifier.perform(StubRun()))

    def test_assembly_error_is_wrapped(self):
        sender = make_sender()
        notifier = CloudAEyeNotifier(self.config, sender=sender)
        cause = OSError('log unreadable')
        with self.assertRaises(PayloadAssemblyError) as ctx:
            notifier.perform(StubRun(log_error=cause))
        self.assertIs(ctx.exception.__cause__, cause)
        self.assertEqual(ctx.exception.build_number, 5)
        sender.send.assert_not_called()

    def test_missing_credentials_warn_but_still_send(self):
        sender = make_sender()
        notifier = CloudAEyeNotifier(NotifierConfig('', ''), sender=sender)
        with self.assertLogs('config', level=logging.WARNING):
            notifier.perform(StubRun(result=BuildResult.SUCCESS))
        sender.send.assert_called_once()

    def test_dry_run_returns_payload(self):
        sender = make_sender()
        notifier = CloudAEyeNotifier(self.config, sender=sender)
        payload = notifier.perform(StubRun(result=BuildResult.SUCCESS), dry_run=True)
        self.assertIsInstance(payload, Payload)
        self.assertEqual(payload.to_dict()['source']['changeLog'][0]['commitId'], 'abc')
        sender.send.assert_not_called()


if __name__ == '__main__':
    unittest.main()
