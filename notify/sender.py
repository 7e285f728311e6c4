"""
Sends a notification payload to the CloudAEye webhook endpoint.
"""
import logging
from typing import Optional, Union

import requests

from config import Secret, plain_text

logger = logging.getLogger(__name__)

ENDPOINT_TEMPLATE = "https://api.cloudaeye.com/rca/test/v1/tenants/{tenant_key}/jenkins/process-build"


class NotificationSender:
    """
    Posts build details to the tenant's CloudAEye endpoint. One request per call, no retry.
    """
    def __init__(self, endpoint_template: str = ENDPOINT_TEMPLATE, timeout: Optional[float] = None):
        self.endpoint_template = endpoint_template
        self.timeout = timeout

    def endpoint_for(self, tenant_key: Union[Secret, str]) -> str:
        return self.endpoint_template.format(tenant_key=plain_text(tenant_key))

    def send(self, details: str, tenant_key: Union[Secret, str], token: Union[Secret, str]) -> requests.Response:
        """
        POST the JSON details and return the raw response.

        The token goes after "Basic " verbatim, without base64 encoding, which is what the
        receiving endpoint expects. Network errors propagate to the caller.
        """
        endpoint = self.endpoint_for(tenant_key)
        headers = {
            "Authorization": f"Basic {plain_text(token)}",
            "Content-Type": "application/json",
        }
        logger.debug("Sending captured build details to CloudAEye : %s", endpoint)
        return requests.post(endpoint, data=details.encode('utf-8'), headers=headers, timeout=self.timeout)
