"""Pytest configuration and shared fixtures for InfraFlow tests."""

import pytest

from infraflow import Resource


@pytest.fixture
def chain_resources():
    """Simple linear dependency chain: A depends on B, B on C."""
    return [
        Resource(type="aws_instance", name="A", provider="aws", id="A",
                 dependencies=["B"]),
        Resource(type="aws_subnet", name="B", provider="aws", id="B",
                 dependencies=["C"]),
        Resource(type="aws_vpc", name="C", provider="aws", id="C"),
    ]


@pytest.fixture
def web_stack_resources():
    """Small AWS web stack with a load balancer, instances and a database."""
    return [
        Resource(type="aws_vpc", name="main", provider="aws", id="vpc"),
        Resource(type="aws_subnet", name="public", provider="aws", id="subnet",
                 dependencies=["vpc"]),
        Resource(type="aws_security_group", name="web", provider="aws",
                 id="sg", attributes={"id": "sg-123"}, dependencies=["vpc"]),
        Resource(type="aws_lb", name="front", provider="aws", id="lb",
                 dependencies=["subnet", "sg"]),
        Resource(type="aws_instance", name="web1", provider="aws", id="web1",
                 attributes={"vpc_security_group_ids": ["sg-123"]},
                 dependencies=["subnet", "db"]),
        Resource(type="aws_instance", name="web2", provider="aws", id="web2",
                 attributes={"vpc_security_group_ids": ["sg-123"]},
                 dependencies=["subnet", "db"]),
        Resource(type="aws_db_instance", name="db", provider="aws", id="db",
                 dependencies=["subnet"]),
        Resource(type="random_password", name="db_pw", provider="random",
                 id="pw"),
    ]


@pytest.fixture
def digitalocean_resources():
    """DigitalOcean firewall and droplet joined only by droplet_ids."""
    return [
        Resource(
            type="digitalocean_firewall",
            name="fw",
            provider="digitalocean",
            id="fw",
            attributes={
                "droplet_ids": [101],
                "inbound_rule": [
                    {"port_range": "22", "protocol": "tcp"},
                    {"port_range": "443", "protocol": "tcp"},
                ],
            },
        ),
        Resource(
            type="digitalocean_droplet",
            name="web",
            provider="digitalocean",
            id="droplet",
            attributes={"id": 101},
        ),
    ]
