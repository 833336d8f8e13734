"""
AWS Signature Version 4 signing for Product Advertising API requests.
"""
from __future__ import annotations

from typing import Dict

from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials


SERVICE_NAME = "ProductAdvertisingAPI"
TARGET_PREFIX = "com.amazon.paapi5.v1.ProductAdvertisingAPIv1"

OPERATIONS = {
    "/paapi5/searchitems": "SearchItems",
    "/paapi5/getitems": "GetItems",
    "/paapi5/getbrowsenodes": "GetBrowseNodes",
    "/paapi5/getvariations": "GetVariations",
}


def target_header(path: str) -> str:
    """Map an API path to its X-Amz-Target value (SearchItems if unknown)."""
    return f"{TARGET_PREFIX}.{OPERATIONS.get(path.lower(), 'SearchItems')}"


class CatalogSigner:
    """Signs PA-API POST requests with SigV4."""

    def __init__(self, access_key: str, secret_key: str, region: str = "us-east-1", host: str = "webservices.amazon.com"):
        if not access_key or not secret_key:
            raise ValueError("Amazon access key and secret key are required")
        self.region = region
        self.host = host
        self._auth = SigV4Auth(Credentials(access_key, secret_key), SERVICE_NAME, region)

    def sign(self, path: str, body: str) -> Dict[str, str]:
        """
        Sign a JSON POST request.

        Args:
            path: Request path, e.g. "/paapi5/searchitems"
            body: Serialized JSON payload

        Returns:
            Headers to send, including Authorization and X-Amz-Date
        """
        request = AWSRequest(
            method="POST",
            url=f"https://{self.host}{path}",
            data=body.encode("utf-8"),
            headers={
                "Host": self.host,
                "Content-Type": "application/json; charset=utf-8",
                "Content-Encoding": "amz-1.0",
                "X-Amz-Target": target_header(path),
            },
        )
        self._auth.add_auth(request)
        return dict(request.headers.items())
