"""Synthesis stages, all extend CollaboratorStage."""

from __future__ import annotations

from valuemap.generation.stages.classify import ClassifyStage
from valuemap.generation.stages.detail import DetailStage
from valuemap.generation.stages.edges import EdgeStage
from valuemap.generation.stages.select import SelectStage
from valuemap.generation.stages.structure import StructureStage

__all__ = [
    "ClassifyStage",
    "DetailStage",
    "EdgeStage",
    "SelectStage",
    "StructureStage",
]
