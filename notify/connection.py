"""
Connectivity test against the CloudAEye webhook.
"""
import json
import logging
from typing import Optional, Union

import requests

from config import FormValidation, Secret
from notify.sender import NotificationSender

logger = logging.getLogger(__name__)


def test_connection(tenant_key: Union[Secret, str], token: Union[Secret, str], sender: Optional[NotificationSender] = None) -> FormValidation:
    """Send a ping payload and report whether the endpoint answered with HTTP 200."""
    sender = sender or NotificationSender()
    ping = json.dumps({"ping": True})
    logger.debug("Ping payload : %s", ping)
    try:
        response = sender.send(ping, tenant_key, token)
    except requests.RequestException as ex:
        logger.debug("Error while trying to ping CloudAEye webhook endpoint : %s", ex)
        return FormValidation.error(f"Error while trying to ping CloudAEye webhook endpoint : {ex}")
    if response.status_code == 200:
        logger.debug("Ping successful")
        return FormValidation.ok("Connection successful!")
    logger.debug("Ping failed : %s", response.text)
    return FormValidation.error(f"Connection failed! Got response: {response.text}")
