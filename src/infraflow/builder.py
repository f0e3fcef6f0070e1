"""
Graph construction from resource records.

GraphBuilder turns an ordered list of Resource records into a Graph in
three phases:

1. Node creation: utility resources are filtered out and every remaining
   resource becomes a Node with a category from the catalog tables.
2. Explicit edges: each declared dependency that resolves to a node
   becomes an edge from the resource to its dependency. The relationship
   label is inferred from the two categories and connection metadata
   (ports, protocols) is pulled from provider-specific attributes.
3. Implicit edges: attribute cross-references that are not declared as
   dependencies (a firewall listing droplet ids, an instance listing its
   security groups, a subnet/NSG association) are resolved through an
   attribute index built once from all nodes.

Each phase starts with a cancellation check; a cancelled build returns the
partial graph with ``graph.cancelled`` set.
"""

import logging
from types import MappingProxyType
from typing import (
    Any,
    Callable,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
)

from .attributes import get_mapping_list, get_string, get_string_list
from .cancellation import CancelToken, is_cancelled
from .catalog import (
    Category,
    Resource,
    category_for,
    provider_for_type,
    should_include,
)
from .graph import EMPTY_METADATA, Graph, Node

logger = logging.getLogger(__name__)


# =============================================================================
# RELATIONSHIP INFERENCE
# =============================================================================

# Checked in order; the first matching (source, target) rule wins.
# None matches any category.
RELATIONSHIP_RULES: Tuple[Tuple[Category, Optional[Category], str], ...] = (
    (Category.SECURITY, Category.COMPUTE, "protects"),
    (Category.SECURITY, Category.LOAD_BALANCER, "filters"),
    (Category.LOAD_BALANCER, Category.COMPUTE, "routes_to"),
    (Category.NETWORK, None, "contains"),
    (Category.COMPUTE, Category.STORAGE, "uses_storage"),
    (Category.COMPUTE, Category.DATABASE, "connects_to_db"),
)

DEFAULT_RELATIONSHIP = "depends_on"


def infer_relationship(source: Category, target: Category) -> str:
    """
    Label the relationship between two resource categories.

    Args:
        source: Category of the node the edge starts at.
        target: Category of the node the edge points to.

    Returns:
        Relationship label, "depends_on" when no rule matches.
    """
    for rule_source, rule_target, relationship in RELATIONSHIP_RULES:
        if source is rule_source and (rule_target is None or target is rule_target):
            return relationship
    return DEFAULT_RELATIONSHIP


# =============================================================================
# CONNECTION METADATA
# =============================================================================

Extractor = Callable[[Mapping[str, Any]], Dict[str, str]]


def _copy_fields(
    attrs: Mapping[str, Any], fields: Sequence[Tuple[str, str]]
) -> Dict[str, str]:
    metadata: Dict[str, str] = {}
    for attr_key, meta_key in fields:
        value, found = get_string(attrs, attr_key)
        if found:
            metadata[meta_key] = value
    return metadata


def _from_rule_blocks(
    attrs: Mapping[str, Any],
    block_key: str,
    fields: Sequence[Tuple[str, str]],
    port_field: str,
) -> Dict[str, str]:
    """
    Read connection details from a list of nested rule blocks.

    The first rule supplies the flat keys. When several rules carry ports,
    all of them are listed under "ports".
    """
    rules, found = get_mapping_list(attrs, block_key)
    if not found:
        return {}

    metadata = _copy_fields(rules[0], fields)
    if len(rules) > 1:
        ports: List[str] = []
        for rule in rules:
            port, has_port = get_string(rule, port_field)
            if has_port and port not in ports:
                ports.append(port)
        if len(ports) > 1:
            metadata["ports"] = ",".join(ports)
    return metadata


def _azure_security_rule(attrs: Mapping[str, Any]) -> Dict[str, str]:
    return _copy_fields(
        attrs, (("destination_port_range", "port"), ("protocol", "protocol"))
    )


def _aws_security_group_rule(attrs: Mapping[str, Any]) -> Dict[str, str]:
    return _copy_fields(attrs, (("from_port", "port"), ("protocol", "protocol")))


def _load_balancer_rule(attrs: Mapping[str, Any]) -> Dict[str, str]:
    return _copy_fields(
        attrs,
        (
            ("frontend_port", "frontend_port"),
            ("backend_port", "backend_port"),
            ("port", "port"),
        ),
    )


def _digitalocean_firewall(attrs: Mapping[str, Any]) -> Dict[str, str]:
    return _from_rule_blocks(
        attrs,
        "inbound_rule",
        (("port_range", "port"), ("protocol", "protocol")),
        port_field="port_range",
    )


def _digitalocean_loadbalancer(attrs: Mapping[str, Any]) -> Dict[str, str]:
    return _from_rule_blocks(
        attrs,
        "forwarding_rule",
        (
            ("entry_port", "frontend_port"),
            ("target_port", "backend_port"),
            ("entry_protocol", "protocol"),
        ),
        port_field="entry_port",
    )


METADATA_EXTRACTORS: Mapping[Tuple[str, str], Extractor] = MappingProxyType(
    {
        ("aws", "aws_security_group_rule"): _aws_security_group_rule,
        ("digitalocean", "digitalocean_firewall"): _digitalocean_firewall,
        ("digitalocean", "digitalocean_loadbalancer"): _digitalocean_loadbalancer,
    }
)

# (provider or "" for any, substring of the type, extractor)
PATTERN_EXTRACTORS: Tuple[Tuple[str, str, Extractor], ...] = (
    ("azure", "security", _azure_security_rule),
    ("", "lb_rule", _load_balancer_rule),
    ("", "lb_listener", _load_balancer_rule),
)


def extract_metadata(source: Node, target: Node) -> Mapping[str, str]:
    """
    Collect connection details for an edge from the source node.

    Returns:
        A new dict with the details, or the shared EMPTY_METADATA mapping
        when the source carries none.
    """
    metadata: Dict[str, str] = {}

    for provider, fragment, extractor in PATTERN_EXTRACTORS:
        if provider and source.provider != provider:
            continue
        if fragment in source.type:
            metadata.update(extractor(source.attributes))

    extractor = METADATA_EXTRACTORS.get((source.provider, source.type))
    if extractor is not None:
        metadata.update(extractor(source.attributes))

    if not metadata:
        return EMPTY_METADATA
    return metadata


# =============================================================================
# ATTRIBUTE INDEX
# =============================================================================


class AttributeIndex:
    """
    Lookup of nodes by (attribute key, string value).

    Built once in O(N * attributes). When two nodes share a value the first
    one in graph order wins.
    """

    def __init__(self, nodes: Mapping[str, Node]):
        self._nodes = nodes
        self._index: Dict[str, Dict[str, str]] = {}
        for node_id, node in nodes.items():
            for key in node.attributes:
                value, found = get_string(node.attributes, key)
                if found:
                    self._index.setdefault(key, {}).setdefault(value, node_id)

    def find(self, key: str, value: str) -> Optional[str]:
        """
        Find the id of a node whose attribute ``key`` equals ``value``.

        Scalar attributes are compared through their string form, so a
        numeric droplet id matches its string reference. Every scalar
        attribute is indexed up front; a key missing from the index belongs
        to no node, so there is nothing left to scan.
        """
        return self._index.get(key, {}).get(value)

    def resolve(self, reference: str) -> Optional[str]:
        """Resolve a cloud id, falling back to a graph node id."""
        node_id = self.find("id", reference)
        if node_id is not None:
            return node_id
        if reference in self._nodes:
            return reference
        return None


# =============================================================================
# IMPLICIT CONNECTIONS
# =============================================================================

# Yields (source id, target id, relationship).
ImplicitRule = Callable[[Resource, AttributeIndex], Iterator[Tuple[str, str, str]]]


def _nsg_subnet_association(
    resource: Resource, index: AttributeIndex
) -> Iterator[Tuple[str, str, str]]:
    subnet_ref, has_subnet = get_string(resource.attributes, "subnet_id")
    nsg_ref, has_nsg = get_string(resource.attributes, "network_security_group_id")
    if not (has_subnet and has_nsg):
        return
    subnet = index.resolve(subnet_ref)
    nsg = index.resolve(nsg_ref)
    if subnet is not None and nsg is not None:
        yield nsg, subnet, "protects"


def _instance_security_groups(
    resource: Resource, index: AttributeIndex
) -> Iterator[Tuple[str, str, str]]:
    group_refs, _ = get_string_list(resource.attributes, "vpc_security_group_ids")
    for group_ref in group_refs:
        group = index.resolve(group_ref)
        if group is not None:
            yield group, resource.id, "protects"


def _firewall_droplets(
    resource: Resource, index: AttributeIndex
) -> Iterator[Tuple[str, str, str]]:
    droplet_refs, _ = get_string_list(resource.attributes, "droplet_ids")
    for droplet_ref in droplet_refs:
        droplet = index.resolve(droplet_ref)
        if droplet is not None:
            yield resource.id, droplet, "protects"


def _loadbalancer_droplets(
    resource: Resource, index: AttributeIndex
) -> Iterator[Tuple[str, str, str]]:
    droplet_refs, _ = get_string_list(resource.attributes, "droplet_ids")
    for droplet_ref in droplet_refs:
        droplet = index.resolve(droplet_ref)
        if droplet is not None:
            yield resource.id, droplet, "routes_to"


IMPLICIT_RULES: Mapping[Tuple[str, str], ImplicitRule] = MappingProxyType(
    {
        (
            "azure",
            "azurerm_subnet_network_security_group_association",
        ): _nsg_subnet_association,
        ("aws", "aws_instance"): _instance_security_groups,
        ("digitalocean", "digitalocean_firewall"): _firewall_droplets,
        ("digitalocean", "digitalocean_loadbalancer"): _loadbalancer_droplets,
    }
)


# =============================================================================
# BUILDER
# =============================================================================


class GraphBuilder:
    """
    Builds a Graph from resource records.

    Counters from the last build are kept on the instance for tracing:
    ``excluded``, ``explicit_edges``, ``implicit_edges`` and
    ``dropped_references``.
    """

    def __init__(self):
        self.excluded = 0
        self.explicit_edges = 0
        self.implicit_edges = 0
        self.dropped_references = 0

    def build(
        self, resources: Sequence[Resource], cancel: Optional[CancelToken] = None
    ) -> Graph:
        """
        Build the resource graph.

        Args:
            resources: Ordered resource records.
            cancel: Optional cancellation token, polled between phases and
                between resources.

        Returns:
            The graph. If cancellation was observed, ``graph.cancelled`` is
            True and the graph holds whatever was built before that point.
        """
        self.excluded = 0
        self.explicit_edges = 0
        self.implicit_edges = 0
        self.dropped_references = 0

        graph = Graph()

        if self._stop(graph, cancel, "node creation"):
            return graph
        for resource in resources:
            if self._stop(graph, cancel, "node creation"):
                return graph
            if not should_include(resource):
                self.excluded += 1
                continue
            graph.add_node(self._make_node(resource))

        if self._stop(graph, cancel, "explicit edges"):
            return graph
        for resource in resources:
            if self._stop(graph, cancel, "explicit edges"):
                return graph
            self._add_explicit_edges(graph, resource)

        if self._stop(graph, cancel, "implicit edges"):
            return graph
        index = AttributeIndex(graph.nodes)
        for resource in resources:
            if self._stop(graph, cancel, "implicit edges"):
                return graph
            self._add_implicit_edges(graph, resource, index)

        logger.debug(
            "built graph: %d nodes, %d explicit edges, %d implicit edges, "
            "%d excluded resources, %d dropped references",
            len(graph.nodes),
            self.explicit_edges,
            self.implicit_edges,
            self.excluded,
            self.dropped_references,
        )
        return graph

    @staticmethod
    def _stop(graph: Graph, cancel: Optional[CancelToken], phase: str) -> bool:
        if not is_cancelled(cancel):
            return False
        if not graph.cancelled:
            logger.warning("graph build cancelled during %s", phase)
        graph.cancelled = True
        return True

    @staticmethod
    def _make_node(resource: Resource) -> Node:
        provider = resource.provider or provider_for_type(resource.type)
        return Node(
            id=resource.id,
            name=resource.name,
            category=category_for(provider, resource.type),
            provider=provider,
            type=resource.type,
            attributes=resource.attributes,
        )

    def _add_explicit_edges(self, graph: Graph, resource: Resource) -> None:
        source = graph.nodes.get(resource.id)
        if source is None:
            return

        for dependency in resource.dependencies:
            target = graph.nodes.get(dependency)
            if target is None or target.id == source.id:
                self.dropped_references += 1
                logger.debug("dropping reference %s -> %s", resource.id, dependency)
                continue

            added = graph.add_edge(
                source.id,
                target.id,
                infer_relationship(source.category, target.category),
                extract_metadata(source, target),
            )
            if added:
                self.explicit_edges += 1

    def _add_implicit_edges(
        self, graph: Graph, resource: Resource, index: AttributeIndex
    ) -> None:
        provider = resource.provider or provider_for_type(resource.type)
        rule = IMPLICIT_RULES.get((provider, resource.type))
        if rule is None:
            return

        for source, target, relationship in rule(resource, index):
            if source == target:
                continue
            if graph.add_edge(source, target, relationship, EMPTY_METADATA):
                self.implicit_edges += 1
                logger.debug("implicit %s edge %s -> %s", relationship, source, target)


def build_graph(
    resources: Sequence[Resource], cancel: Optional[CancelToken] = None
) -> Graph:
    """Build a resource graph with a fresh GraphBuilder."""
    return GraphBuilder().build(resources, cancel)
