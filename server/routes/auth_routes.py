"""Identity API routes."""

from fastapi import APIRouter, status

from server.schemas.auth import IdentityResponse, RedeemTokenRequest
from server.services.identity_service import IdentityIssuer

router = APIRouter(prefix="/auth", tags=["Identity"])


@router.post("/redeem", response_model=IdentityResponse)
async def redeem_token(request: RedeemTokenRequest):
    """
    Exchange a pre-provisioned token for its identity.

    Raises:
        - 401: Unknown token
    """
    identity = IdentityIssuer().redeem_token(request.token)
    return IdentityResponse(identity=identity)


@router.post("/anonymous", response_model=IdentityResponse, status_code=status.HTTP_201_CREATED)
async def sign_in_anonymously():
    """
    Issue a fresh anonymous identity.
    """
    identity = IdentityIssuer().sign_in_anonymously()
    return IdentityResponse(identity=identity)
