"""
Error types raised by the Azure IP address manager.

Every SDK call made by the manager runs inside ``provider_errors`` so callers
only ever see ``AuthenticationError`` or ``ProviderError``.
"""

from contextlib import contextmanager

from azure.core.exceptions import AzureError, ClientAuthenticationError


class AzureIPManagerError(Exception):
    """Base class for all errors raised by this package"""


class AuthenticationError(AzureIPManagerError):
    """Missing or rejected service principal credentials"""


class ProviderError(AzureIPManagerError):
    """A remote Azure call was rejected or failed"""

    def __init__(self, operation: str, message: str):
        super().__init__(f"Failed to {operation}: {message}")
        self.operation = operation


class PublicIPStillBoundError(ProviderError):
    """A public IP address delete was refused because it is still bound"""

    def __init__(self, public_ip_id: str, ip_configuration_id: str):
        super().__init__(
            f"delete public IP address {public_ip_id}",
            f"still bound to IP configuration {ip_configuration_id}"
        )
        self.public_ip_id = public_ip_id
        self.ip_configuration_id = ip_configuration_id


@contextmanager
def provider_errors(operation: str):
    """Translate Azure SDK exceptions raised inside the block"""
    try:
        yield
    except ClientAuthenticationError as e:
        raise AuthenticationError(f"Authentication failed while trying to {operation}: {e.message}") from e
    except AzureError as e:
        raise ProviderError(operation, e.message) from e
