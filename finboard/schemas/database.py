from typing import Dict, List, Optional

from pydantic import BaseModel

from finboard.models import DatabaseBackend


class DatabaseSelection(BaseModel):
    backend: DatabaseBackend


class DatabaseSettings(BaseModel):
    backend: DatabaseBackend
    available: List[DatabaseBackend]


class MigrationDetails(BaseModel):
    profile: str = ""
    categories: str = ""
    transactions: str = ""
    budget_goals: str = ""


class MigrationResult(BaseModel):
    success: bool
    message: str
    details: MigrationDetails
    counts: Dict[str, int]
    errors: List[str]
    backend: Optional[DatabaseBackend] = None
