"""
Resource catalog for infrastructure diagrams.

Defines the input record (Resource), the resource categories used for
grouping and colouring, and the static lookup tables that classify
provider resource types. All tables are built once at import time and are
read-only afterwards, so they can be shared freely between requests.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping


class ResourceError(ValueError):
    """Raised when a resource record cannot be interpreted."""

    pass


class Category(Enum):
    """Layout category of a resource."""

    NETWORK = "network"
    SECURITY = "security"
    COMPUTE = "compute"
    LOAD_BALANCER = "load_balancer"
    STORAGE = "storage"
    DATABASE = "database"
    DNS = "dns"
    CERTIFICATE = "certificate"
    SECRET = "secret"
    CONTAINER = "container"
    CDN = "cdn"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Resource:
    """
    A single infrastructure resource as produced by an upstream parser.

    Attributes:
        type: Provider resource type, e.g. "aws_instance".
        name: Resource name as written in the configuration.
        provider: Provider tag ("aws", "azure", "digitalocean", ...).
        attributes: Loosely-typed attribute values.
        id: Stable identifier, referenced by other resources' dependencies.
        dependencies: Ids of the resources this one depends on.
    """

    type: str
    name: str
    provider: str = ""
    attributes: Mapping[str, Any] = field(default_factory=dict)
    id: str = ""
    dependencies: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Resource":
        """
        Create a Resource from a plain mapping.

        Missing providers are inferred from the type prefix and a missing
        name defaults to the id.

        Raises:
            ResourceError: If the record has no type or no id.
        """
        res_type = data.get("type")
        res_id = data.get("id")
        if not res_type:
            raise ResourceError(f"Resource {res_id!r} has no type")
        if not res_id:
            raise ResourceError(f"Resource of type {res_type!r} has no id")

        provider = data.get("provider") or provider_for_type(res_type)
        return cls(
            type=res_type,
            name=data.get("name") or res_id,
            provider=provider,
            attributes=dict(data.get("attributes") or {}),
            id=res_id,
            dependencies=list(data.get("dependencies") or []),
        )


PROVIDER_PREFIXES = (
    ("azurerm_", "azure"),
    ("aws_", "aws"),
    ("google_", "gcp"),
    ("digitalocean_", "digitalocean"),
)


def provider_for_type(resource_type: str) -> str:
    """Return the provider tag implied by a resource type prefix."""
    for prefix, provider in PROVIDER_PREFIXES:
        if resource_type.startswith(prefix):
            return provider
    return ""


AZURE_CATEGORIES = MappingProxyType(
    {
        "azurerm_virtual_network": Category.NETWORK,
        "azurerm_subnet": Category.NETWORK,
        "azurerm_network_security_group": Category.SECURITY,
        "azurerm_network_security_rule": Category.SECURITY,
        "azurerm_virtual_machine": Category.COMPUTE,
        "azurerm_linux_virtual_machine": Category.COMPUTE,
        "azurerm_windows_virtual_machine": Category.COMPUTE,
        "azurerm_lb": Category.LOAD_BALANCER,
        "azurerm_lb_backend_address_pool": Category.LOAD_BALANCER,
        "azurerm_lb_rule": Category.LOAD_BALANCER,
        "azurerm_storage_account": Category.STORAGE,
        "azurerm_managed_disk": Category.STORAGE,
        "azurerm_sql_server": Category.DATABASE,
        "azurerm_sql_database": Category.DATABASE,
        "azurerm_dns_zone": Category.DNS,
        "azurerm_key_vault": Category.SECRET,
        "azurerm_key_vault_certificate": Category.CERTIFICATE,
        "azurerm_key_vault_key": Category.SECRET,
        "azurerm_key_vault_secret": Category.SECRET,
    }
)

AWS_CATEGORIES = MappingProxyType(
    {
        "aws_vpc": Category.NETWORK,
        "aws_subnet": Category.NETWORK,
        "aws_security_group": Category.SECURITY,
        "aws_security_group_rule": Category.SECURITY,
        "aws_network_acl": Category.SECURITY,
        "aws_instance": Category.COMPUTE,
        "aws_launch_template": Category.COMPUTE,
        "aws_lb": Category.LOAD_BALANCER,
        "aws_alb": Category.LOAD_BALANCER,
        "aws_lb_target_group": Category.LOAD_BALANCER,
        "aws_lb_listener": Category.LOAD_BALANCER,
        "aws_s3_bucket": Category.STORAGE,
        "aws_ebs_volume": Category.STORAGE,
        "aws_db_instance": Category.DATABASE,
        "aws_dynamodb_table": Category.DATABASE,
        "aws_route53_zone": Category.DNS,
        "aws_route53_record": Category.DNS,
        "aws_acm_certificate": Category.CERTIFICATE,
        "aws_acm_certificate_validation": Category.CERTIFICATE,
        "aws_iam_server_certificate": Category.CERTIFICATE,
        "aws_secretsmanager_secret": Category.SECRET,
        "aws_secretsmanager_secret_version": Category.SECRET,
        "aws_kms_key": Category.SECRET,
        "aws_kms_alias": Category.SECRET,
    }
)

DIGITALOCEAN_CATEGORIES = MappingProxyType(
    {
        "digitalocean_vpc": Category.NETWORK,
        "digitalocean_firewall": Category.SECURITY,
        "digitalocean_droplet": Category.COMPUTE,
        "digitalocean_kubernetes_cluster": Category.COMPUTE,
        "digitalocean_app": Category.COMPUTE,
        "digitalocean_loadbalancer": Category.LOAD_BALANCER,
        "digitalocean_spaces_bucket": Category.STORAGE,
        "digitalocean_volume": Category.STORAGE,
        "digitalocean_database_cluster": Category.DATABASE,
        "digitalocean_database_db": Category.DATABASE,
        "digitalocean_database_replica": Category.DATABASE,
        "digitalocean_domain": Category.DNS,
        "digitalocean_record": Category.DNS,
        "digitalocean_certificate": Category.CERTIFICATE,
        "digitalocean_cdn": Category.CDN,
        "digitalocean_container_registry": Category.CONTAINER,
    }
)

CATEGORY_TABLES = MappingProxyType(
    {
        "azure": AZURE_CATEGORIES,
        "aws": AWS_CATEGORIES,
        "digitalocean": DIGITALOCEAN_CATEGORIES,
    }
)

# Lower sorts first inside a layer.
CATEGORY_PRIORITY = MappingProxyType(
    {
        Category.NETWORK: 1,
        Category.SECURITY: 2,
        Category.DNS: 3,
        Category.CERTIFICATE: 4,
        Category.LOAD_BALANCER: 5,
        Category.COMPUTE: 6,
        Category.CONTAINER: 7,
        Category.DATABASE: 8,
        Category.STORAGE: 9,
        Category.CDN: 10,
        Category.SECRET: 11,
        Category.UNKNOWN: 99,
    }
)

FOUNDATION_CATEGORIES = frozenset({Category.SECURITY, Category.NETWORK})

EXCLUDED_TYPES = frozenset(
    {
        "tls_private_key",
        "tls_cert_request",
        "tls_locally_signed_cert",
        "tls_self_signed_cert",
        "local_file",
        "local_sensitive_file",
        "null_resource",
        "random_id",
        "random_integer",
        "random_password",
        "random_pet",
        "random_shuffle",
        "random_string",
        "random_uuid",
        "time_sleep",
        "time_static",
        "time_rotating",
        "time_offset",
        "terraform_data",
        "external",
        "http",
        "template_file",
        "template_dir",
        "template_cloudinit_config",
        "archive_file",
    }
)


def category_for(provider: str, resource_type: str) -> Category:
    """
    Classify a resource type.

    The provider's own table is consulted first; types from other tables
    are still recognised when the provider tag is missing or mislabelled.
    """
    table = CATEGORY_TABLES.get(provider)
    if table is not None and resource_type in table:
        return table[resource_type]

    for other in CATEGORY_TABLES.values():
        if resource_type in other:
            return other[resource_type]

    return Category.UNKNOWN


def category_priority(category: Category) -> int:
    """Return the in-layer sort priority of a category."""
    return CATEGORY_PRIORITY.get(category, CATEGORY_PRIORITY[Category.UNKNOWN])


def is_cloud_resource(resource_type: str) -> bool:
    """Return False for local utility types that create no infrastructure."""
    return resource_type not in EXCLUDED_TYPES


def should_include(resource: Resource) -> bool:
    """
    Decide whether a resource becomes a node in the diagram.

    Association helpers only wire other resources together and are left
    out, except load balancer associations which are real topology.
    """
    if not is_cloud_resource(resource.type):
        return False

    lowered = resource.type.lower()
    if "_association" in lowered and "load_balancer" not in lowered:
        return False

    return True


def resources_from_dicts(records: List[Dict[str, Any]]) -> List[Resource]:
    """Convert a list of plain mappings into Resource records."""
    return [Resource.from_dict(record) for record in records]
