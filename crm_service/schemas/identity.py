from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class IdentityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    subject: str
    permissions: list[str]


class JwksStatusOut(BaseModel):
    loaded: bool
    key_count: int
    stale: bool


class HealthOut(BaseModel):
    status: str
    timestamp: str
    jwks: JwksStatusOut
