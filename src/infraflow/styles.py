"""
Display lookups shared by renderers.

Colours per category, edge labels built from connection metadata and
readable names for resource types. Nothing here affects the layout.
"""

from types import MappingProxyType

from .catalog import PROVIDER_PREFIXES, Category
from .graph import Edge, Node

# Fill colour of node boxes
CATEGORY_COLORS = MappingProxyType(
    {
        Category.NETWORK: "#1E88E5",
        Category.SECURITY: "#E53935",
        Category.COMPUTE: "#43A047",
        Category.LOAD_BALANCER: "#FB8C00",
        Category.STORAGE: "#8E24AA",
        Category.DATABASE: "#00ACC1",
        Category.DNS: "#FDD835",
        Category.CERTIFICATE: "#7CB342",
        Category.SECRET: "#5E35B1",
        Category.CONTAINER: "#039BE5",
        Category.CDN: "#F4511E",
        Category.UNKNOWN: "#757575",
    }
)

# Accent colour for borders and icons (Material palette)
ACCENT_COLORS = MappingProxyType(
    {
        Category.NETWORK: "#2196F3",
        Category.SECURITY: "#F44336",
        Category.COMPUTE: "#4CAF50",
        Category.LOAD_BALANCER: "#FF9800",
        Category.STORAGE: "#9C27B0",
        Category.DATABASE: "#00BCD4",
        Category.DNS: "#FFC107",
        Category.CERTIFICATE: "#8BC34A",
        Category.SECRET: "#673AB7",
        Category.CONTAINER: "#03A9F4",
        Category.CDN: "#FF5722",
        Category.UNKNOWN: "#607D8B",
    }
)


def node_color(node: Node) -> str:
    return CATEGORY_COLORS.get(node.category, CATEGORY_COLORS[Category.UNKNOWN])


def accent_color(node: Node) -> str:
    return ACCENT_COLORS.get(node.category, ACCENT_COLORS[Category.UNKNOWN])


def lighten_color(hex_color: str, percent: int) -> str:
    """
    Move a "#RRGGBB" colour towards white.

    Args:
        hex_color: Colour with or without the leading "#".
        percent: 0 keeps the colour, 100 gives white.

    Returns:
        The lightened colour as upper-case "#RRGGBB".
    """
    hex_color = hex_color.lstrip("#")
    factor = percent / 100.0

    channels = []
    for i in (0, 2, 4):
        value = int(hex_color[i : i + 2], 16)
        value = int(value + (255 - value) * factor)
        channels.append(min(max(value, 0), 255))

    return "#{:02X}{:02X}{:02X}".format(*channels)


def format_edge_label(edge: Edge) -> str:
    """
    Build a label such as "protects :443 tcp" from edge metadata.

    Returns an empty string when the edge carries neither a port nor a
    protocol, so plain dependencies stay unlabelled.
    """
    parts = [edge.relationship]

    port = edge.metadata.get("port", "")
    if port:
        parts.append(f":{port}")
    protocol = edge.metadata.get("protocol", "")
    if protocol:
        parts.append(protocol)

    if len(parts) > 1:
        return " ".join(parts)
    return ""


def resource_type_name(resource_type: str) -> str:
    """Turn "azurerm_virtual_machine" into "Virtual Machine"."""
    name = resource_type
    for prefix, _ in PROVIDER_PREFIXES:
        if name.startswith(prefix):
            name = name[len(prefix) :]
            break

    words = name.replace("_", " ").split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


def truncate(text: str, max_len: int) -> str:
    """Shorten text to max_len characters, ending with "..." when cut."""
    if len(text) <= max_len:
        return text
    if max_len < 3:
        return text[:max_len]
    return text[: max_len - 3] + "..."
