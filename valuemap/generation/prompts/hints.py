"""Shared prompt fragments and JSON shape hints for collaborator calls."""

from valuemap.models.schemas import CATEGORIES

NODE_FIELDS = f"""\
Each node MUST include:
- "id": lowercase kebab-case, unique and descriptive
- "label": human-readable name (2-5 words)
- "category": one of: {", ".join(CATEGORIES)}
- "description": one factual sentence (15-30 words)
- "objective": what this actor or function is trying to achieve (1 sentence)
- "revenueModel": how this actor earns income (1 sentence, "N/A" if non-revenue)
- "tools": 2-4 real tools, platforms, or systems
- "actors": 2-4 real companies or organizations active here
- "painPoints": 2-3 known friction points or inefficiencies
- "costDrivers": 2-3 major operating cost categories
- "regulatoryNotes": one sentence on applicable regulations or licenses"""

CLASSIFY_SHAPE = """\
{
  "archetype": "<archetype-key>",
  "subject": "<Professional Industry Name>",
  "region": "<Country or Global>"
}"""

STRUCTURE_SHAPE = """\
{
  "roots": [
    {"id": "...", "label": "...", "category": "...", "description": "...", "objective": "...",
     "revenueModel": "...", "tools": [], "actors": [], "painPoints": [], "costDrivers": [],
     "regulatoryNotes": "..."}
  ]
}"""

DETAIL_SHAPE = """\
{
  "children": [
    {"id": "...", "label": "...", "category": "...", "description": "...",
     "children": [
       {"id": "...", "label": "...", "category": "...", "description": "...", "children": []}
     ]}
  ]
}"""

EDGES_SHAPE = """\
{
  "edges": [{"source": "<id>", "target": "<id>"}]
}"""

SELECT_SHAPE = """\
{
  "selected": ["<existing-id>", "..."],
  "new": [{"id": "...", "label": "...", "category": "...", "description": "..."}]
}"""
