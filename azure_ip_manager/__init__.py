"""
Azure public IP address walkthrough.

Provisions a VM with a public IP, moves it to a second public IP, detaches it
and removes everything again.
"""

from .errors import AuthenticationError, AzureIPManagerError, ProviderError, PublicIPStillBoundError
from .manager import AzureIPAddressManager
from .sequencer import CleanupOutcome, ProvisioningSequencer, RunContext, RunState, StepResult

__version__ = '0.1.0'

__all__ = [
    'AuthenticationError',
    'AzureIPManagerError',
    'AzureIPAddressManager',
    'CleanupOutcome',
    'ProviderError',
    'ProvisioningSequencer',
    'PublicIPStillBoundError',
    'RunContext',
    'RunState',
    'StepResult',
]
