"""
Configuration loading.

Run settings come from ``config.yaml``, VM admin credentials from
``.env.secret`` and the service principal from the environment (optionally
seeded from a ``.env`` file).
"""

import os
import logging
from typing import Dict, List, Optional
from dataclasses import dataclass

import yaml
from dotenv import load_dotenv

from .errors import AuthenticationError
from .utils import create_password, create_random_name, create_username

logger = logging.getLogger(__name__)

CREDENTIAL_VARIABLES = ('CLIENT_ID', 'CLIENT_SECRET', 'TENANT_ID', 'SUBSCRIPTION_ID')

DEFAULT_IMAGE = {
    'publisher': 'MicrosoftWindowsServer',
    'offer': 'WindowsServer',
    'sku': '2022-datacenter-azure-edition',
    'version': 'latest'
}

ALLOCATION_METHODS = ('Dynamic', 'Static')


def load_secrets(secret_file: str = '.env.secret') -> Dict[str, Optional[str]]:
    """Load VM admin credentials from the secret file"""
    if os.path.exists(secret_file):
        load_dotenv(secret_file)
        return {
            'admin_username': os.getenv('ADMIN_USERNAME'),
            'admin_password': os.getenv('ADMIN_PASSWORD')
        }
    logger.info(f"{secret_file} not found, VM admin credentials will be generated")
    return {'admin_username': None, 'admin_password': None}


def load_config(config_file: str = 'config.yaml') -> Dict:
    """Load configuration from a YAML file"""
    if os.path.exists(config_file):
        with open(config_file, 'r') as f:
            return yaml.safe_load(f) or {}
    logger.warning(f"⚠️  {config_file} not found. Using default configuration.")
    return {}


@dataclass
class SampleConfig:
    """Run configuration; explicit arguments win over config file values"""
    location: str = None
    vm_size: str = None
    address_prefix: str = None
    subnet_name: str = None
    image: Dict[str, str] = None
    public_ip_allocation_method: str = None
    public_ip_sku: str = None
    resource_group_prefix: str = None
    admin_username: str = None
    admin_password: str = None
    tags: Dict[str, str] = None
    config_file: str = 'config.yaml'
    secret_file: str = '.env.secret'

    def __post_init__(self):
        config_data = load_config(self.config_file)
        secrets_data = load_secrets(self.secret_file)

        self.location = self.location or config_data.get('location', 'eastus')
        self.vm_size = self.vm_size or config_data.get('vm_size', 'Standard_D2a_v4')
        self.address_prefix = self.address_prefix or config_data.get('address_prefix', '10.0.0.0/28')
        self.subnet_name = self.subnet_name or config_data.get('subnet_name', 'subnet1')
        self.image = self.image or config_data.get('image', dict(DEFAULT_IMAGE))
        self.public_ip_allocation_method = (self.public_ip_allocation_method
                                            or config_data.get('public_ip_allocation_method', 'Static'))
        self.public_ip_sku = self.public_ip_sku or config_data.get('public_ip_sku', 'Standard')
        self.resource_group_prefix = self.resource_group_prefix or config_data.get('resource_group_prefix', 'rgNEMP')

        # Generated per run unless pinned in .env.secret
        self.admin_username = self.admin_username or secrets_data['admin_username'] or create_username()
        self.admin_password = self.admin_password or secrets_data['admin_password'] or create_password()

        if self.tags is None:
            self.tags = config_data.get('tags', {'sample': 'manage-ip-address'})

        if self.public_ip_allocation_method not in ALLOCATION_METHODS:
            raise ValueError(
                f"public_ip_allocation_method must be one of {ALLOCATION_METHODS}, "
                f"got {self.public_ip_allocation_method!r}"
            )
        # Standard SKU public IPs only support static allocation
        if self.public_ip_sku == 'Standard' and self.public_ip_allocation_method == 'Dynamic':
            raise ValueError("public_ip_sku 'Standard' requires public_ip_allocation_method 'Static'")


@dataclass
class AzureCredentials:
    """Service principal and target subscription"""
    client_id: str
    client_secret: str
    tenant_id: str
    subscription_id: str


def load_credentials(env_file: str = '.env') -> AzureCredentials:
    """Read the service principal from the environment, seeded from env_file if present"""
    if env_file and os.path.exists(env_file):
        # Variables already set in the process environment take precedence
        load_dotenv(env_file, override=False)

    values = {name: os.getenv(name) for name in CREDENTIAL_VARIABLES}
    missing: List[str] = [name for name, value in values.items() if not value]
    if missing:
        raise AuthenticationError(f"Missing required environment variables: {', '.join(missing)}")

    return AzureCredentials(
        client_id=values['CLIENT_ID'],
        client_secret=values['CLIENT_SECRET'],
        tenant_id=values['TENANT_ID'],
        subscription_id=values['SUBSCRIPTION_ID']
    )


@dataclass
class ResourceNames:
    """Unique names for every resource created in one run"""
    resource_group: str
    public_ip_1: str
    public_ip_2: str
    dns_label_1: str
    dns_label_2: str
    vm_name: str

    @classmethod
    def generate(cls, resource_group_prefix: str = 'rgNEMP') -> 'ResourceNames':
        return cls(
            resource_group=create_random_name(resource_group_prefix, max_length=24),
            public_ip_1=create_random_name('pip1-'),
            public_ip_2=create_random_name('pip2-'),
            dns_label_1=create_random_name('dns-pip1-'),
            dns_label_2=create_random_name('dns-pip2-'),
            # Windows computer names are limited to 15 characters
            vm_name=create_random_name('vm', max_length=15)
        )
