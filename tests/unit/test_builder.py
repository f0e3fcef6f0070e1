"""Unit tests for the graph builder."""

import threading

import pytest

from infraflow.builder import (
    AttributeIndex,
    GraphBuilder,
    build_graph,
    extract_metadata,
    infer_relationship,
)
from infraflow.catalog import Category, Resource
from infraflow.graph import EMPTY_METADATA, Node


class CountdownToken:
    """Cancellation token that trips after a number of checks."""

    def __init__(self, checks):
        self.checks = checks
        self.calls = 0

    def is_set(self):
        self.calls += 1
        return self.calls > self.checks


class TestInferRelationship:
    """Tests for relationship labels."""

    @pytest.mark.parametrize(
        "source,target,expected",
        [
            (Category.SECURITY, Category.COMPUTE, "protects"),
            (Category.SECURITY, Category.LOAD_BALANCER, "filters"),
            (Category.LOAD_BALANCER, Category.COMPUTE, "routes_to"),
            (Category.NETWORK, Category.COMPUTE, "contains"),
            (Category.NETWORK, Category.UNKNOWN, "contains"),
            (Category.COMPUTE, Category.STORAGE, "uses_storage"),
            (Category.COMPUTE, Category.DATABASE, "connects_to_db"),
            (Category.COMPUTE, Category.NETWORK, "depends_on"),
            (Category.DNS, Category.CDN, "depends_on"),
        ],
    )
    def test_rules(self, source, target, expected):
        assert infer_relationship(source, target) == expected


class TestExtractMetadata:
    """Tests for connection metadata extraction."""

    def _node(self, resource_type, provider, attributes):
        return Node(
            id="n", name="n", provider=provider, type=resource_type,
            attributes=attributes,
        )

    def test_aws_security_group_rule(self):
        source = self._node(
            "aws_security_group_rule", "aws", {"from_port": 443, "protocol": "tcp"}
        )
        assert extract_metadata(source, Node(id="t", name="t")) == {
            "port": "443",
            "protocol": "tcp",
        }

    def test_azure_security_rule(self):
        source = self._node(
            "azurerm_network_security_rule",
            "azure",
            {"destination_port_range": "3389", "protocol": "Tcp"},
        )
        metadata = extract_metadata(source, Node(id="t", name="t"))
        assert metadata["port"] == "3389"
        assert metadata["protocol"] == "Tcp"

    def test_load_balancer_rule(self):
        source = self._node(
            "azurerm_lb_rule", "azure", {"frontend_port": 80, "backend_port": 8080}
        )
        assert extract_metadata(source, Node(id="t", name="t")) == {
            "frontend_port": "80",
            "backend_port": "8080",
        }

    def test_firewall_first_rule_and_ports(self):
        """Test the first rule supplies port/protocol and all ports are listed."""
        source = self._node(
            "digitalocean_firewall",
            "digitalocean",
            {
                "inbound_rule": [
                    {"port_range": "22", "protocol": "tcp"},
                    {"port_range": "443", "protocol": "tcp"},
                    {"port_range": "22", "protocol": "udp"},
                ]
            },
        )
        assert extract_metadata(source, Node(id="t", name="t")) == {
            "port": "22",
            "protocol": "tcp",
            "ports": "22,443",
        }

    def test_loadbalancer_forwarding_rule(self):
        source = self._node(
            "digitalocean_loadbalancer",
            "digitalocean",
            {
                "forwarding_rule": {
                    "entry_port": 443,
                    "target_port": 80,
                    "entry_protocol": "https",
                }
            },
        )
        assert extract_metadata(source, Node(id="t", name="t")) == {
            "frontend_port": "443",
            "backend_port": "80",
            "protocol": "https",
        }

    def test_no_metadata(self):
        source = self._node("aws_instance", "aws", {"ami": "ami-1"})
        assert extract_metadata(source, Node(id="t", name="t")) is EMPTY_METADATA


class TestAttributeIndex:
    """Tests for the attribute index."""

    def test_first_node_wins(self):
        nodes = {
            "a": Node(id="a", name="a", attributes={"name": "shared"}),
            "b": Node(id="b", name="b", attributes={"name": "shared"}),
        }
        assert AttributeIndex(nodes).find("name", "shared") == "a"

    def test_numeric_values_match_strings(self):
        nodes = {"d": Node(id="d", name="d", attributes={"id": 101})}
        assert AttributeIndex(nodes).find("id", "101") == "d"

    def test_unknown_key(self):
        nodes = {"d": Node(id="d", name="d", attributes={"tags": ["web"]})}
        index = AttributeIndex(nodes)
        assert index.find("name", "d") is None
        assert index.find("tags", "web") is None

    def test_resolve_falls_back_to_node_id(self):
        nodes = {"d": Node(id="d", name="d", attributes={"id": "cloud-1"})}
        index = AttributeIndex(nodes)
        assert index.resolve("cloud-1") == "d"
        assert index.resolve("d") == "d"
        assert index.resolve("nothing") is None


class TestGraphBuilder:
    """Tests for GraphBuilder."""

    def test_chain(self, chain_resources):
        graph = build_graph(chain_resources)
        assert graph.get_nodes() == ["A", "B", "C"]
        assert graph.get_edges() == [("A", "B"), ("B", "C")]
        assert graph.get_edge("A", "B").relationship == "depends_on"
        assert graph.get_edge("B", "C").relationship == "contains"
        assert not graph.cancelled

    def test_categories_and_provider(self):
        graph = build_graph([Resource(type="aws_vpc", name="main", id="v")])
        node = graph.nodes["v"]
        assert node.category == Category.NETWORK
        assert node.provider == "aws"
        assert node.type == "aws_vpc"

    def test_web_stack(self, web_stack_resources):
        builder = GraphBuilder()
        graph = builder.build(web_stack_resources)

        assert "pw" not in graph
        assert builder.excluded == 1
        assert graph.get_edge("web1", "db").relationship == "connects_to_db"
        assert graph.get_edge("sg", "web1").relationship == "protects"
        assert graph.get_edge("sg", "web2").relationship == "protects"
        assert builder.implicit_edges == 2

    def test_firewall_droplets(self, digitalocean_resources):
        """Test a firewall protects droplets listed only by cloud id."""
        graph = build_graph(digitalocean_resources)
        edge = graph.get_edge("fw", "droplet")
        assert edge is not None
        assert edge.relationship == "protects"
        assert edge.metadata is EMPTY_METADATA

    def test_loadbalancer_droplets(self):
        graph = build_graph(
            [
                Resource(
                    type="digitalocean_loadbalancer",
                    name="lb",
                    id="lb",
                    attributes={"droplet_ids": ["7"]},
                ),
                Resource(
                    type="digitalocean_droplet",
                    name="d",
                    id="d",
                    attributes={"id": "7"},
                ),
            ]
        )
        assert graph.get_edge("lb", "d").relationship == "routes_to"

    def test_nsg_association(self):
        """Test an association resource links an NSG to its subnet."""
        graph = build_graph(
            [
                Resource(
                    type="azurerm_subnet",
                    name="subnet",
                    id="subnet",
                    attributes={"id": "/subnets/app"},
                ),
                Resource(
                    type="azurerm_network_security_group",
                    name="nsg",
                    id="nsg",
                    attributes={"id": "/nsgs/app"},
                ),
                Resource(
                    type="azurerm_subnet_network_security_group_association",
                    name="assoc",
                    id="assoc",
                    attributes={
                        "subnet_id": "/subnets/app",
                        "network_security_group_id": "/nsgs/app",
                    },
                ),
            ]
        )
        assert "assoc" not in graph
        assert graph.get_edge("nsg", "subnet").relationship == "protects"

    def test_unknown_and_self_references_dropped(self):
        builder = GraphBuilder()
        graph = builder.build(
            [
                Resource(type="aws_vpc", name="v", id="v", dependencies=["v", "x"]),
            ]
        )
        assert graph.edges == []
        assert builder.dropped_references == 2

    def test_duplicate_dependencies(self):
        graph = build_graph(
            [
                Resource(type="aws_subnet", name="s", id="s", dependencies=["v", "v"]),
                Resource(type="aws_vpc", name="v", id="v"),
            ]
        )
        assert graph.get_edges() == [("s", "v")]

    def test_explicit_edge_wins_over_implicit(self):
        """Test an implicit edge duplicating an explicit one is not added."""
        builder = GraphBuilder()
        graph = builder.build(
            [
                Resource(
                    type="digitalocean_firewall",
                    name="fw",
                    id="fw",
                    attributes={"droplet_ids": ["d"]},
                    dependencies=["d"],
                ),
                Resource(type="digitalocean_droplet", name="d", id="d"),
            ]
        )
        assert len(graph.edges) == 1
        assert builder.explicit_edges == 1
        assert builder.implicit_edges == 0

    def test_empty_input(self):
        graph = build_graph([])
        assert len(graph) == 0
        assert graph.edges == []


class TestCancellation:
    """Tests for cooperative cancellation."""

    def test_cancelled_before_start(self, chain_resources):
        event = threading.Event()
        event.set()
        graph = build_graph(chain_resources, event)
        assert graph.cancelled
        assert len(graph) == 0

    def test_cancelled_before_edges(self, chain_resources):
        """Test a build stopped after node creation keeps its nodes."""
        # 1 phase check + 3 resource checks, then the edge phase check trips
        graph = build_graph(chain_resources, CountdownToken(4))
        assert graph.cancelled
        assert len(graph) == 3
        assert graph.edges == []

    def test_cancelled_before_implicit_edges(self):
        """Test a build stopped after the explicit phase keeps those edges."""
        resources = [
            Resource(type="aws_vpc", name="v", provider="aws", id="v"),
            Resource(
                type="digitalocean_firewall",
                name="fw",
                provider="digitalocean",
                id="fw",
                attributes={"droplet_ids": [101]},
                dependencies=["v"],
            ),
            Resource(
                type="digitalocean_droplet",
                name="web",
                provider="digitalocean",
                id="droplet",
                attributes={"id": 101},
            ),
        ]
        # Two phases of 1 + 3 checks each, then the implicit phase trips
        graph = build_graph(resources, CountdownToken(8))
        assert graph.cancelled
        assert len(graph) == 3
        assert graph.get_edges() == [("fw", "v")]

    def test_unset_event(self, chain_resources):
        graph = build_graph(chain_resources, threading.Event())
        assert not graph.cancelled
        assert len(graph.edges) == 2
