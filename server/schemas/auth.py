"""Pydantic schemas for identity endpoints."""

from pydantic import BaseModel


class RedeemTokenRequest(BaseModel):
    """Request model for token redemption."""
    token: str


class IdentityResponse(BaseModel):
    """Response model carrying an issued identity."""
    identity: str
