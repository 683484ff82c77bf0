"""Schemas for the back-reference maintenance endpoints."""

from pydantic import BaseModel
from typing import List

from .common_schema import Envelope


class BackrefIssue(BaseModel):
    """One entity whose back-reference list disagrees with the join table."""

    entity: str
    id: int
    field: str
    dangling: List[int] = []
    missing: List[int] = []


class ConsistencyReport(Envelope):
    consistent: bool
    issues: List[BackrefIssue]


class RebuildResponse(Envelope):
    changed: int
