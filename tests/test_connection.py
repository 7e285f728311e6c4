import json
from unittest.mock import Mock

import requests

from config import FormValidation
from notify import connection


def _sender(status=200, text='', error=None):
    sender = Mock()
    if error is not None:
        sender.send.side_effect = error
    else:
        sender.send.return_value = Mock(status_code=status, text=text)
    return sender


def test_ping_success():
    sender = _sender(200)
    res = connection.test_connection('T1', 'tok', sender=sender)
    assert res.kind == FormValidation.OK
    assert res.message == 'Connection successful!'
    details, tenant_key, token = sender.send.call_args[0]
    assert json.loads(details) == {'ping': True}
    assert (tenant_key, token) == ('T1', 'tok')


def test_ping_non_200_is_error():
    res = connection.test_connection('T1', 'tok', sender=_sender(403, 'forbidden'))
    assert res.kind == FormValidation.ERROR
    assert res.message == 'Connection failed! Got response: forbidden'


def test_ping_transport_error():
    res = connection.test_connection('T1', 'tok', sender=_sender(error=requests.ConnectionError('no route')))
    assert res.kind == FormValidation.ERROR
    assert res.message.startswith('Error while trying to ping CloudAEye webhook endpoint : ')
    assert 'no route' in res.message
