"""Command line entry point"""

import os
import sys
import logging
import argparse
from typing import List, Optional

from azure.identity import ClientSecretCredential

from .config import SampleConfig, load_credentials
from .errors import AuthenticationError
from .manager import AzureIPAddressManager
from .sequencer import ProvisioningSequencer

logger = logging.getLogger(__name__)


def setup_logging(log_dir: str = 'var/logs', verbose: bool = False):
    """Setup logging configuration"""
    os.makedirs(log_dir, exist_ok=True)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(os.path.join(log_dir, 'azure-ip-manager.log')),
            logging.StreamHandler(sys.stdout)
        ]
    )

    # Reduce Azure SDK logging verbosity
    logging.getLogger('azure').setLevel(logging.WARNING)
    logging.getLogger('azure.core.pipeline.policies.http_logging_policy').setLevel(logging.WARNING)
    logging.getLogger('azure.mgmt').setLevel(logging.WARNING)
    logging.getLogger('azure.identity').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)


def build_credential(tenant_id: str, client_id: str, client_secret: str) -> ClientSecretCredential:
    try:
        return ClientSecretCredential(tenant_id, client_id, client_secret)
    except ValueError as e:
        raise AuthenticationError(f"Invalid service principal settings: {e}") from e


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description='Azure public IP address walkthrough: attach, reassign and detach a VM public IP'
    )
    parser.add_argument('--location',
                        help='Azure region (overrides config.yaml)')
    parser.add_argument('--vm-size',
                        help='VM size (overrides config.yaml)')
    parser.add_argument('--config', default='config.yaml',
                        help='Path to the YAML configuration file')
    parser.add_argument('--env-file', default='.env',
                        help='dotenv file holding CLIENT_ID, CLIENT_SECRET, TENANT_ID and SUBSCRIPTION_ID')
    parser.add_argument('--log-dir', default='var/logs',
                        help='Directory for the log file')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable debug logging')
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI interface"""
    args = parse_args(argv)
    setup_logging(args.log_dir, args.verbose)

    try:
        credentials = load_credentials(args.env_file)
        config = SampleConfig(
            location=args.location,
            vm_size=args.vm_size,
            config_file=args.config
        )
        credential = build_credential(credentials.tenant_id, credentials.client_id, credentials.client_secret)
        manager = AzureIPAddressManager(credentials.subscription_id, config, credential)
        manager.validate_credentials()

        context = ProvisioningSequencer(manager, config).run()
        logger.info(f"✅ Walkthrough completed, cleanup: {context.cleanup_outcome.value}")

    except Exception as e:
        logger.error(f"❌ Error: {e}")
        return 1

    return 0
