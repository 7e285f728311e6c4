import unittest

from config import (
    FormValidation,
    NotifierConfig,
    Secret,
    check_tenant_key,
    check_token,
    plain_text,
    resolve_config,
)


class DictStore:
    def __init__(self, tenant_key='', token=''):
        self.config = NotifierConfig(tenant_key, token)

    def load(self):
        return self.config


class TestSecret(unittest.TestCase):
    def test_repr_hides_value(self):
        s = Secret('super-secret')
        self.assertNotIn('super-secret', repr(s))
        self.assertNotIn('super-secret', str(s))
        self.assertEqual(s.get_plain_text(), 'super-secret')

    def test_empty(self):
        self.assertTrue(Secret(None).is_empty())
        self.assertEqual(plain_text(None), '')
        self.assertEqual(plain_text('x'), 'x')

    def test_config_repr_hides_values(self):
        cfg = NotifierConfig('tenant-1', 'token-1')
        self.assertNotIn('tenant-1', repr(cfg))
        self.assertNotIn('token-1', repr(cfg))


class TestChecks(unittest.TestCase):
    def test_empty_values_warn(self):
        res = check_tenant_key('')
        self.assertEqual(res.kind, FormValidation.WARNING)
        self.assertEqual(res.message, 'Please specify a valid tenant key')
        res = check_token(Secret(''))
        self.assertEqual(res.kind, FormValidation.WARNING)
        self.assertEqual(res.message, 'Please provide a valid token')

    def test_present_values_ok(self):
        self.assertEqual(check_tenant_key('T1').kind, FormValidation.OK)
        self.assertEqual(check_token(Secret('tok')).kind, FormValidation.OK)

    def test_validate_reports_both(self):
        results = NotifierConfig('T1', '').validate()
        self.assertEqual(results['tenant_key'].kind, FormValidation.OK)
        self.assertEqual(results['token'].kind, FormValidation.WARNING)


class TestResolveConfig(unittest.TestCase):
    def test_cli_over_env_over_store(self):
        store = DictStore('stored-tenant', 'stored-token')
        env = {'CLOUDAEYE_TENANT_KEY': 'env-tenant', 'CLOUDAEYE_TOKEN': 'env-token'}

        cfg = resolve_config('cli-tenant', None, store=store, environ=env)
        self.assertEqual(cfg.tenant_key.get_plain_text(), 'cli-tenant')
        self.assertEqual(cfg.token.get_plain_text(), 'env-token')

        cfg = resolve_config(None, None, store=store, environ={})
        self.assertEqual(cfg.tenant_key.get_plain_text(), 'stored-tenant')
        self.assertEqual(cfg.token.get_plain_text(), 'stored-token')

    def test_nothing_configured(self):
        cfg = resolve_config(environ={})
        self.assertTrue(cfg.tenant_key.is_empty())
        self.assertTrue(cfg.token.is_empty())


if __name__ == '__main__':
    unittest.main()
