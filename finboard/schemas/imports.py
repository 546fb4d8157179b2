from typing import List

from pydantic import BaseModel


class ImportResult(BaseModel):
    success: int
    failed: int
    total: int
    # First few row errors only
    errors: List[str]
