"""
Azure resource operations used by the provisioning sequence.

Each method maps to one remote operation. Long-running operations are started
with the SDK's ``begin_*`` call and waited to a terminal state before the
method returns, so no two mutations are ever in flight at once.
"""

import time
import logging
from datetime import datetime
from typing import Dict, List, Optional

from azure.core.exceptions import ResourceNotFoundError
from azure.mgmt.compute import ComputeManagementClient
from azure.mgmt.resource.resources import ResourceManagementClient
from azure.mgmt.network import NetworkManagementClient
from azure.mgmt.compute.models import (
    VirtualMachine, HardwareProfile, StorageProfile, ImageReference,
    OSProfile, NetworkProfile, NetworkInterfaceReference
)
from azure.mgmt.network.models import (
    NetworkInterface, NetworkInterfaceIPConfiguration, PublicIPAddress,
    PublicIPAddressDnsSettings, PublicIPAddressSku, VirtualNetwork,
    AddressSpace, Subnet
)

from .config import ALLOCATION_METHODS, SampleConfig
from .errors import AzureIPManagerError, PublicIPStillBoundError, provider_errors
from .utils import (
    format_duration, primary_of, public_ip_id_of,
    resource_group_of, resource_name_of
)

MANAGEMENT_SCOPE = 'https://management.azure.com/.default'


class AzureIPAddressManager:
    """Azure resource operations for the public IP address walkthrough"""

    def __init__(self, subscription_id: str, config: SampleConfig, credential,
                 compute_client=None, network_client=None, resource_client=None):
        self.subscription_id = subscription_id
        self.config = config
        self.credential = credential

        self.compute_client = compute_client or ComputeManagementClient(
            credential, subscription_id
        )
        self.network_client = network_client or NetworkManagementClient(
            credential, subscription_id
        )
        self.resource_client = resource_client or ResourceManagementClient(
            credential, subscription_id
        )

        self.logger = logging.getLogger(__name__)

    def _log_operation_start(self, operation: str) -> float:
        """Log operation start and return start time"""
        start_time = time.time()
        self.logger.info(f"🚀 Starting {operation} at {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        return start_time

    def _log_operation_end(self, operation: str, start_time: float) -> float:
        """Log operation completion and return its duration"""
        duration = time.time() - start_time
        self.logger.info(f"✅ {operation} completed in {format_duration(duration)}")
        return duration

    def _wait_until_completed(self, poller, operation: str):
        """Block on a long-running operation until it reaches a terminal state"""
        self.logger.debug(f"⏳ Waiting for {operation}...")
        return poller.result()

    def validate_credentials(self):
        """Acquire a management token so bad credentials fail before any resource is touched"""
        self.logger.info("🔍 Validating Azure credentials...")
        with provider_errors("acquire an Azure management token"):
            self.credential.get_token(MANAGEMENT_SCOPE)
        self.logger.info("✅ Azure credentials validated")

    def create_resource_group(self, name: str, location: Optional[str] = None):
        """Create a resource group and return it"""
        location = location or self.config.location
        self.logger.info(f"Creating resource group with name: {name}")
        rg_params = {
            'location': location,
            'tags': self.config.tags
        }
        with provider_errors(f"create resource group {name}"):
            resource_group = self.resource_client.resource_groups.create_or_update(name, rg_params)
        self.logger.info(f"Created a resource group with name: {resource_group.name}")
        return resource_group

    def create_public_ip_address(self, resource_group: str, name: str,
                                 allocation_method: Optional[str] = None,
                                 dns_label: Optional[str] = None) -> PublicIPAddress:
        """Create a public IP address, optionally with a leaf DNS label"""
        allocation_method = allocation_method or self.config.public_ip_allocation_method
        if allocation_method not in ALLOCATION_METHODS:
            raise ValueError(f"allocation_method must be one of {ALLOCATION_METHODS}, got {allocation_method!r}")

        self.logger.info(f"Creating a public IP address {name} ({allocation_method})...")
        pip_params = PublicIPAddress(
            location=self.config.location,
            sku=PublicIPAddressSku(name=self.config.public_ip_sku),
            public_ip_allocation_method=allocation_method,
            dns_settings=PublicIPAddressDnsSettings(domain_name_label=dns_label) if dns_label else None,
            tags=self.config.tags
        )

        with provider_errors(f"create public IP address {name}"):
            pip_operation = self.network_client.public_ip_addresses.begin_create_or_update(
                resource_group, name, pip_params
            )
            public_ip = self._wait_until_completed(pip_operation, f"public IP address {name}")

        self.logger.info(f"Created a public IP address: {public_ip.name}")
        return public_ip

    def create_virtual_machine(self, resource_group: str, name: str, public_ip: PublicIPAddress,
                               address_prefix: Optional[str] = None,
                               image: Optional[Dict[str, str]] = None,
                               admin_username: Optional[str] = None,
                               admin_password: Optional[str] = None,
                               vm_size: Optional[str] = None) -> VirtualMachine:
        """Create a VM on a new network whose primary NIC is bound to public_ip"""
        address_prefix = address_prefix or self.config.address_prefix
        image = image or self.config.image
        admin_username = admin_username or self.config.admin_username
        admin_password = admin_password or self.config.admin_password
        vm_size = vm_size or self.config.vm_size

        vnet_name = f"{name}-vnet"
        nic_name = f"{name}-nic"

        self.logger.info(f"Creating virtual network {vnet_name} ({address_prefix})")
        vnet_params = VirtualNetwork(
            location=self.config.location,
            address_space=AddressSpace(address_prefixes=[address_prefix]),
            subnets=[
                Subnet(
                    name=self.config.subnet_name,
                    address_prefix=address_prefix
                )
            ],
            tags=self.config.tags
        )
        with provider_errors(f"create virtual network {vnet_name}"):
            vnet_operation = self.network_client.virtual_networks.begin_create_or_update(
                resource_group, vnet_name, vnet_params
            )
            vnet = self._wait_until_completed(vnet_operation, f"virtual network {vnet_name}")

        self.logger.info(f"Creating primary network interface {nic_name}")
        nic_params = NetworkInterface(
            location=self.config.location,
            ip_configurations=[
                NetworkInterfaceIPConfiguration(
                    name='primary',
                    primary=True,
                    subnet=Subnet(id=vnet.subnets[0].id),
                    private_ip_allocation_method='Dynamic',
                    public_ip_address=PublicIPAddress(id=public_ip.id)
                )
            ],
            tags=self.config.tags
        )
        with provider_errors(f"create network interface {nic_name}"):
            nic_operation = self.network_client.network_interfaces.begin_create_or_update(
                resource_group, nic_name, nic_params
            )
            nic = self._wait_until_completed(nic_operation, f"network interface {nic_name}")

        vm_params = VirtualMachine(
            location=self.config.location,
            hardware_profile=HardwareProfile(
                vm_size=vm_size
            ),
            storage_profile=StorageProfile(
                image_reference=ImageReference(**image)
            ),
            os_profile=OSProfile(
                computer_name=name[:15],  # Windows computer name limit
                admin_username=admin_username,
                admin_password=admin_password
            ),
            network_profile=NetworkProfile(
                network_interfaces=[
                    NetworkInterfaceReference(id=nic.id, primary=True)
                ]
            ),
            tags=self.config.tags
        )

        vm_start = self._log_operation_start(f"VM '{name}' provisioning")
        with provider_errors(f"create virtual machine {name}"):
            vm_operation = self.compute_client.virtual_machines.begin_create_or_update(
                resource_group, name, vm_params
            )
            vm = self._wait_until_completed(vm_operation, f"virtual machine {name}")
        self._log_operation_end(f"VM '{name}' provisioning", vm_start)
        return vm

    def refresh_virtual_machine(self, vm) -> VirtualMachine:
        """Fetch the current state of a VM; model objects are snapshots"""
        rg_name = resource_group_of(vm.id)
        vm_name = resource_name_of(vm.id)
        with provider_errors(f"read virtual machine {vm_name}"):
            return self.compute_client.virtual_machines.get(rg_name, vm_name)

    def get_primary_network_interface(self, vm) -> NetworkInterface:
        nic_refs = vm.network_profile.network_interfaces if vm.network_profile else []
        nic_ref = primary_of(nic_refs)
        if nic_ref is None:
            raise ValueError(f"Virtual machine {vm.id} has no network interfaces")

        nic_name = resource_name_of(nic_ref.id)
        with provider_errors(f"read network interface {nic_name}"):
            return self.network_client.network_interfaces.get(resource_group_of(nic_ref.id), nic_name)

    def get_primary_public_ip_address(self, vm) -> Optional[PublicIPAddress]:
        """Read the public IP bound to the VM's primary IP configuration, or None"""
        nic = self.get_primary_network_interface(vm)
        pip_id = public_ip_id_of(primary_of(nic.ip_configurations))
        if pip_id is None:
            return None

        pip_name = resource_name_of(pip_id)
        with provider_errors(f"read public IP address {pip_name}"):
            return self.network_client.public_ip_addresses.get(resource_group_of(pip_id), pip_name)

    def update_network_interface_primary_ip(self, nic: NetworkInterface,
                                            public_ip: Optional[PublicIPAddress]) -> NetworkInterface:
        """Bind public_ip to the NIC's primary IP configuration, or unbind when None"""
        ip_configuration = primary_of(nic.ip_configurations)
        if ip_configuration is None:
            raise ValueError(f"Network interface {nic.id} has no IP configurations")

        nic_name = resource_name_of(nic.id)
        if public_ip is None:
            self.logger.info(f"Removing public IP address from network interface {nic_name}")
            ip_configuration.public_ip_address = None
        else:
            self.logger.info(f"Binding public IP address {public_ip.name} to network interface {nic_name}")
            ip_configuration.public_ip_address = PublicIPAddress(id=public_ip.id)

        # Full PUT of the interface; unset fields are cleared server-side
        with provider_errors(f"update network interface {nic_name}"):
            nic_operation = self.network_client.network_interfaces.begin_create_or_update(
                resource_group_of(nic.id), nic_name, nic
            )
            return self._wait_until_completed(nic_operation, f"network interface {nic_name} update")

    def delete_public_ip_address(self, public_ip_id: str):
        """Delete a public IP address that is no longer bound to any IP configuration"""
        rg_name = resource_group_of(public_ip_id)
        pip_name = resource_name_of(public_ip_id)

        with provider_errors(f"read public IP address {pip_name}"):
            public_ip = self.network_client.public_ip_addresses.get(rg_name, pip_name)
        if public_ip.ip_configuration is not None:
            raise PublicIPStillBoundError(public_ip_id, public_ip.ip_configuration.id)

        self.logger.info(f"Deleting the public IP address {pip_name}")
        with provider_errors(f"delete public IP address {pip_name}"):
            pip_operation = self.network_client.public_ip_addresses.begin_delete(rg_name, pip_name)
            self._wait_until_completed(pip_operation, f"public IP address {pip_name} deletion")
        self.logger.info(f"Deleted the public IP address {pip_name}")

    def list_resources_in_group(self, resource_group: str) -> List[Dict]:
        """List all resources in the resource group"""
        try:
            resources = []
            with provider_errors(f"list resources in {resource_group}"):
                resource_list = self.resource_client.resources.list_by_resource_group(resource_group)
                for resource in resource_list:
                    resources.append({
                        'name': resource.name,
                        'type': resource.type,
                        'location': resource.location
                    })
            return resources
        except AzureIPManagerError as e:
            self.logger.error(f"Failed to list resources: {e}")
            return []

    def delete_resource_group(self, resource_group_id: str) -> bool:
        """Delete a resource group and everything in it; False if it was already gone"""
        rg_name = resource_group_of(resource_group_id)
        destroy_start = self._log_operation_start(f"resource group '{rg_name}' deletion")

        with provider_errors(f"delete resource group {rg_name}"):
            try:
                rg_operation = self.resource_client.resource_groups.begin_delete(rg_name)
                self._wait_until_completed(rg_operation, f"resource group {rg_name} deletion")
            except ResourceNotFoundError:
                self.logger.info(f"Resource group {rg_name} does not exist, nothing to delete")
                return False

        self._log_operation_end(f"Resource group '{rg_name}' deletion", destroy_start)
        return True
