"""Naming, formatting and description helpers"""

import random
import secrets
import string
from typing import List, Optional

from azure.mgmt.core.tools import parse_resource_id


def create_random_name(prefix: str, max_length: int = 30) -> str:
    """Append a random lowercase suffix to prefix, keeping the result under max_length"""
    suffix_length = max(3, min(8, max_length - len(prefix)))
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=suffix_length))
    return f"{prefix}{suffix}"[:max_length]


def create_username() -> str:
    return create_random_name('tirekicker', max_length=20)


def create_password(length: int = 16) -> str:
    """Generate a password meeting Azure's VM complexity rules"""
    alphabet = string.ascii_letters + string.digits + '!@#$%^&*'
    required = [
        secrets.choice(string.ascii_lowercase),
        secrets.choice(string.ascii_uppercase),
        secrets.choice(string.digits),
        secrets.choice('!@#$%^&*'),
    ]
    rest = [secrets.choice(alphabet) for _ in range(max(length, 12) - len(required))]
    chars = required + rest
    random.SystemRandom().shuffle(chars)
    return ''.join(chars)


def format_duration(seconds: float) -> str:
    """Format duration in a human-readable way"""
    if seconds < 60:
        return f"{seconds:.1f} seconds"
    elif seconds < 3600:
        minutes = seconds / 60
        return f"{minutes:.1f} minutes ({seconds:.1f} seconds)"
    else:
        hours = seconds / 3600
        minutes = (seconds % 3600) / 60
        return f"{hours:.1f} hours, {minutes:.1f} minutes ({seconds:.1f} seconds)"


def resource_group_of(resource_id: str) -> str:
    return parse_resource_id(resource_id)['resource_group']


def resource_name_of(resource_id: str) -> str:
    return parse_resource_id(resource_id)['name']


def describe_public_ip_address(public_ip) -> str:
    """Multi-line summary of a public IP address resource"""
    if public_ip is None:
        return "Public IP Address: (none)"

    dns = public_ip.dns_settings
    lines = [
        f"Public IP Address: {public_ip.id}",
        f"\tName: {public_ip.name}",
        f"\tResource group: {resource_group_of(public_ip.id) if public_ip.id else None}",
        f"\tRegion: {public_ip.location}",
        f"\tTags: {public_ip.tags}",
        f"\tIP address: {public_ip.ip_address}",
        f"\tLeaf domain label: {dns.domain_name_label if dns else None}",
        f"\tFQDN: {dns.fqdn if dns else None}",
        f"\tReverse FQDN: {dns.reverse_fqdn if dns else None}",
        f"\tIdle timeout (minutes): {public_ip.idle_timeout_in_minutes}",
        f"\tIP allocation method: {public_ip.public_ip_allocation_method}",
        f"\tIP version: {public_ip.public_ip_address_version}",
    ]
    if public_ip.ip_configuration is not None:
        lines.append(f"\tAssigned to IP configuration: {public_ip.ip_configuration.id}")
    else:
        lines.append("\tAssigned to IP configuration: (unassigned)")
    return '\n'.join(lines)


def describe_virtual_machine(vm) -> str:
    """Multi-line summary of a virtual machine resource"""
    lines = [
        f"Virtual Machine: {vm.id}",
        f"\tName: {vm.name}",
        f"\tResource group: {resource_group_of(vm.id) if vm.id else None}",
        f"\tRegion: {vm.location}",
        f"\tTags: {vm.tags}",
        f"\tProvisioning state: {vm.provisioning_state}",
    ]

    if vm.hardware_profile:
        lines.append("\tHardwareProfile:")
        lines.append(f"\t\tSize: {vm.hardware_profile.vm_size}")

    storage = vm.storage_profile
    if storage:
        lines.append("\tStorageProfile:")
        if storage.image_reference:
            image = storage.image_reference
            lines.append("\t\tImageReference:")
            lines.append(f"\t\t\tPublisher: {image.publisher}")
            lines.append(f"\t\t\tOffer: {image.offer}")
            lines.append(f"\t\t\tSKU: {image.sku}")
            lines.append(f"\t\t\tVersion: {image.version}")
        if storage.os_disk:
            lines.append("\t\tOSDisk:")
            lines.append(f"\t\t\tOSType: {storage.os_disk.os_type}")
            lines.append(f"\t\t\tName: {storage.os_disk.name}")
            lines.append(f"\t\t\tCaching: {storage.os_disk.caching}")
            lines.append(f"\t\t\tCreateOption: {storage.os_disk.create_option}")
            lines.append(f"\t\t\tDiskSizeGB: {storage.os_disk.disk_size_gb}")

    if vm.os_profile:
        lines.append("\tOSProfile:")
        lines.append(f"\t\tComputerName: {vm.os_profile.computer_name}")
        lines.append(f"\t\tAdminUsername: {vm.os_profile.admin_username}")

    lines.append("\tNetworkProfile:")
    for nic_id in network_interface_ids(vm):
        lines.append(f"\t\tNetworkInterface id: {nic_id}")
    return '\n'.join(lines)


def network_interface_ids(vm) -> List[str]:
    if not vm.network_profile or not vm.network_profile.network_interfaces:
        return []
    return [nic.id for nic in vm.network_profile.network_interfaces]


def primary_of(items: list):
    """Return the item flagged primary, or the first one"""
    if not items:
        return None
    for item in items:
        if item.primary:
            return item
    return items[0]


def public_ip_id_of(ip_configuration) -> Optional[str]:
    if ip_configuration is None or ip_configuration.public_ip_address is None:
        return None
    return ip_configuration.public_ip_address.id
