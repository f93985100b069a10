"""
Pydantic schemas for the /settings/recipients endpoints.

RecipientLists: the runtime layer of the recipient resolver, one list per channel.
RecipientSettings: runtime layer + what each channel resolves to right now.
"""

from pydantic import BaseModel, Field


class RecipientLists(BaseModel):
    """Request body for PUT /settings/recipients. Invalid addresses are dropped."""

    planned: list[str] = Field(default_factory=list)
    actual: list[str] = Field(default_factory=list)
    all: list[str] = Field(default_factory=list)


class RecipientSettings(BaseModel):
    """Response body for GET/PUT /settings/recipients."""

    runtime: RecipientLists
    effective: RecipientLists   # after runtime → environment → fallback layering
