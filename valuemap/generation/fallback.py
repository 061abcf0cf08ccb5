"""Static skeleton graph served whenever synthesis cannot produce anything."""

from __future__ import annotations

from valuemap.models.schemas import Edge, Graph, GraphNode

_SKELETON: tuple[tuple[str, str, str, str], ...] = (
    ("capital", "Capital", "Funding, investment, and financial resources",
     "Provide financial resources to enable operations"),
    ("inputs", "Inputs", "Raw materials, data, and supply chain resources",
     "Source and deliver essential inputs for production"),
    ("production", "Production", "Primary transformation or service delivery",
     "Transform inputs into core products or services"),
    ("processing", "Processing", "Quality control, packaging, and post-production",
     "Refine and prepare output for distribution"),
    ("distribution", "Distribution", "Channels to reach the end customer",
     "Deliver products or services to customer segments"),
    ("customer", "Customer", "End users and their experience",
     "Acquire, serve, and retain customers"),
    ("compliance", "Compliance", "Legal, regulatory, and standards requirements",
     "Ensure operations meet regulatory obligations"),
    ("infrastructure", "Infrastructure", "Technology, systems, and operational backbone",
     "Provide shared platforms and tools for all functions"),
)

_SKELETON_EDGES: tuple[tuple[str, str], ...] = (
    ("capital", "inputs"),
    ("inputs", "production"),
    ("production", "processing"),
    ("processing", "distribution"),
    ("distribution", "customer"),
    ("compliance", "production"),
    ("compliance", "distribution"),
    ("infrastructure", "production"),
    ("infrastructure", "distribution"),
    ("capital", "production"),
)


def fallback_graph(query: str) -> Graph:
    """One root per category, linked along the generic value chain."""
    return Graph(
        subject=query.strip() or "Unknown Industry",
        nodes=[
            GraphNode(id=node_id, label=label, category=node_id, description=description, objective=objective)
            for node_id, label, description, objective in _SKELETON
        ],
        edges=[Edge(source=source, target=target) for source, target in _SKELETON_EDGES],
    )
