"""Tests for naming and formatting helpers."""
import string

from azure_ip_manager.utils import (
    create_password,
    create_random_name,
    describe_public_ip_address,
    describe_virtual_machine,
    format_duration,
    primary_of,
    resource_group_of,
    resource_name_of,
)

from conftest import make_nic, make_public_ip, make_vm, network_id


def test_random_name_respects_max_length():
    name = create_random_name('a-very-long-prefix-', max_length=20)
    assert name.startswith('a-very-long-prefix-'[:20])
    assert len(name) <= 20


def test_random_name_is_dns_safe():
    name = create_random_name('dns-pip1-')
    suffix = name[len('dns-pip1-'):]
    assert suffix
    assert set(suffix) <= set(string.ascii_lowercase + string.digits)


def test_password_has_every_character_class():
    password = create_password()
    assert len(password) >= 12
    assert any(c.islower() for c in password)
    assert any(c.isupper() for c in password)
    assert any(c.isdigit() for c in password)
    assert any(c in '!@#$%^&*' for c in password)


def test_format_duration():
    assert format_duration(12.34) == "12.3 seconds"
    assert format_duration(90) == "1.5 minutes (90.0 seconds)"
    assert format_duration(5400).startswith("1.5 hours")


def test_resource_id_parsing():
    pip_id = network_id('rg-test1', 'publicIPAddresses', 'pip1-abc')
    assert resource_group_of(pip_id) == 'rg-test1'
    assert resource_name_of(pip_id) == 'pip1-abc'


def test_primary_of_prefers_flagged_item():
    nic = make_nic('rg-test1', 'nic')
    assert primary_of(nic.ip_configurations).name == 'primary'
    assert primary_of([]) is None


def test_describe_public_ip_address():
    pip = make_public_ip('rg-test1', 'pip1-abc', 'dns-pip1-abc', ip_configuration_id='/ipconfig/primary')
    text = describe_public_ip_address(pip)

    assert 'Name: pip1-abc' in text
    assert 'Resource group: rg-test1' in text
    assert 'Leaf domain label: dns-pip1-abc' in text
    assert 'Assigned to IP configuration: /ipconfig/primary' in text


def test_describe_missing_public_ip_address():
    assert describe_public_ip_address(None) == "Public IP Address: (none)"


def test_describe_virtual_machine():
    nic_id = network_id('rg-test1', 'networkInterfaces', 'vmXYZ-nic')
    text = describe_virtual_machine(make_vm('rg-test1', 'vmXYZ', nic_id))

    assert 'Name: vmXYZ' in text
    assert 'Size: Standard_D2a_v4' in text
    assert f'NetworkInterface id: {nic_id}' in text
