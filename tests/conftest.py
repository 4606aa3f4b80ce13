"""Shared fixtures: Azure model factories and an in-memory manager double"""

from types import SimpleNamespace
from typing import Optional

import pytest

from azure.mgmt.compute.models import (
    HardwareProfile, NetworkInterfaceReference, NetworkProfile, VirtualMachine
)
from azure.mgmt.network.models import (
    IPConfiguration, NetworkInterface, NetworkInterfaceIPConfiguration,
    PublicIPAddress, PublicIPAddressDnsSettings
)

from azure_ip_manager.config import SampleConfig
from azure_ip_manager.errors import ProviderError, PublicIPStillBoundError

SUBSCRIPTION = '00000000-0000-0000-0000-000000000000'


def rg_id(rg: str) -> str:
    return f"/subscriptions/{SUBSCRIPTION}/resourceGroups/{rg}"


def network_id(rg: str, kind: str, name: str) -> str:
    return f"{rg_id(rg)}/providers/Microsoft.Network/{kind}/{name}"


def make_public_ip(rg: str, name: str, dns_label: Optional[str] = None,
                   ip_configuration_id: Optional[str] = None,
                   ip_address: str = '20.1.2.3') -> PublicIPAddress:
    pip = PublicIPAddress(
        id=network_id(rg, 'publicIPAddresses', name),
        location='eastus',
        public_ip_allocation_method='Static',
        dns_settings=PublicIPAddressDnsSettings(domain_name_label=dns_label) if dns_label else None,
        ip_address=ip_address
    )
    pip.name = name
    if ip_configuration_id:
        pip.ip_configuration = IPConfiguration(id=ip_configuration_id)
    return pip


def make_nic(rg: str, name: str, public_ip_id: Optional[str] = None) -> NetworkInterface:
    nic_id = network_id(rg, 'networkInterfaces', name)
    nic = NetworkInterface(
        id=nic_id,
        location='eastus',
        ip_configurations=[
            NetworkInterfaceIPConfiguration(
                id=f"{nic_id}/ipConfigurations/primary",
                name='primary',
                primary=True,
                public_ip_address=PublicIPAddress(id=public_ip_id) if public_ip_id else None
            )
        ]
    )
    nic.name = name
    return nic


def make_vm(rg: str, name: str, nic_id: str) -> VirtualMachine:
    vm = VirtualMachine(
        location='eastus',
        hardware_profile=HardwareProfile(vm_size='Standard_D2a_v4'),
        network_profile=NetworkProfile(
            network_interfaces=[NetworkInterfaceReference(id=nic_id, primary=True)]
        )
    )
    vm.id = f"{rg_id(rg)}/providers/Microsoft.Compute/virtualMachines/{name}"
    vm.name = name
    return vm


class FakeAzureManager:
    """In-memory stand-in for AzureIPAddressManager that records every call"""

    def __init__(self, fail_on=(), sticky_binding: bool = False):
        self.calls = []
        self.fail_on = set(fail_on)
        self.sticky_binding = sticky_binding
        self.groups = set()
        self.public_ips = {}
        self.dns_labels = {}
        self.nic_rg = None
        self.nic_name = None
        self.vm_rg = None
        self.vm_name = None
        self.bound_public_ip_id = None
        self.deleted_while_bound = []

    def _record(self, operation: str, *args):
        self.calls.append((operation,) + args)
        if operation in self.fail_on:
            raise ProviderError(operation.replace('_', ' '), 'injected failure')

    def operations(self):
        return [call[0] for call in self.calls]

    def _public_ip(self, pip_id: str) -> PublicIPAddress:
        rg, name = self.public_ips[pip_id]
        ip_configuration_id = None
        if self.bound_public_ip_id == pip_id:
            ip_configuration_id = f"{network_id(self.nic_rg, 'networkInterfaces', self.nic_name)}/ipConfigurations/primary"
        return make_public_ip(rg, name, self.dns_labels.get(pip_id), ip_configuration_id)

    def validate_credentials(self):
        self._record('validate_credentials')

    def create_resource_group(self, name, location=None):
        self._record('create_resource_group', name)
        self.groups.add(rg_id(name))
        return SimpleNamespace(id=rg_id(name), name=name, location=location)

    def create_public_ip_address(self, resource_group, name, allocation_method=None, dns_label=None):
        self._record('create_public_ip_address', name)
        pip_id = network_id(resource_group, 'publicIPAddresses', name)
        self.public_ips[pip_id] = (resource_group, name)
        self.dns_labels[pip_id] = dns_label
        return self._public_ip(pip_id)

    def create_virtual_machine(self, resource_group, name, public_ip, **kwargs):
        self._record('create_virtual_machine', name)
        self.nic_rg = resource_group
        self.nic_name = f"{name}-nic"
        self.bound_public_ip_id = public_ip.id
        self.vm_rg = resource_group
        self.vm_name = name
        return make_vm(resource_group, name, network_id(resource_group, 'networkInterfaces', self.nic_name))

    def refresh_virtual_machine(self, vm):
        self._record('refresh_virtual_machine')
        return make_vm(self.vm_rg, self.vm_name, network_id(self.nic_rg, 'networkInterfaces', self.nic_name))

    def get_primary_network_interface(self, vm):
        self._record('get_primary_network_interface')
        return make_nic(self.nic_rg, self.nic_name, self.bound_public_ip_id)

    def get_primary_public_ip_address(self, vm):
        self._record('get_primary_public_ip_address')
        if self.bound_public_ip_id is None:
            return None
        return self._public_ip(self.bound_public_ip_id)

    def update_network_interface_primary_ip(self, nic, public_ip):
        self._record('update_network_interface_primary_ip', public_ip.id if public_ip else None)
        if public_ip is not None:
            self.bound_public_ip_id = public_ip.id
        elif not self.sticky_binding:
            self.bound_public_ip_id = None
        return make_nic(self.nic_rg, self.nic_name, self.bound_public_ip_id)

    def delete_public_ip_address(self, public_ip_id):
        self._record('delete_public_ip_address', public_ip_id)
        if self.bound_public_ip_id == public_ip_id:
            self.deleted_while_bound.append(public_ip_id)
            raise PublicIPStillBoundError(public_ip_id, 'primary')
        del self.public_ips[public_ip_id]

    def list_resources_in_group(self, resource_group):
        self._record('list_resources_in_group', resource_group)
        return [
            {'name': name, 'type': 'Microsoft.Network/publicIPAddresses', 'location': 'eastus'}
            for rg, name in self.public_ips.values() if rg == resource_group
        ]

    def delete_resource_group(self, resource_group_id):
        self._record('delete_resource_group', resource_group_id)
        if resource_group_id not in self.groups:
            return False
        self.groups.remove(resource_group_id)
        return True


@pytest.fixture
def isolated_cwd(tmp_path, monkeypatch):
    """Run with no config.yaml or .env.secret in the working directory"""
    monkeypatch.chdir(tmp_path)
    for name in ('ADMIN_USERNAME', 'ADMIN_PASSWORD'):
        monkeypatch.setenv(name, '')
        monkeypatch.delenv(name)
    return tmp_path


@pytest.fixture
def sample_config(isolated_cwd):
    return SampleConfig(
        admin_username='azureuser',
        admin_password='Sup3r!Secret#pw'
    )


@pytest.fixture
def fake_manager():
    return FakeAzureManager()
