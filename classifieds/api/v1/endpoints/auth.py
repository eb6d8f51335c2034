from fastapi import APIRouter, Depends

from classifieds.adapters.registry import Backends
from classifieds.api.v1.deps import get_backends
from classifieds.schemas.auth import AccountOut, SignInIn, SignUpIn, TokenOut
from classifieds.services.auth import get_credential

router = APIRouter(prefix="/auth")


@router.post("/signup", response_model=AccountOut, status_code=201)
async def sign_up(payload: SignUpIn, backends: Backends = Depends(get_backends)) -> AccountOut:
    backends.require("accounts")
    identity = await backends.accounts.sign_up(
        email=str(payload.email),
        password=payload.password,
        display_name=payload.display_name,
    )
    return AccountOut(uid=identity.uid, email=identity.email, display_name=identity.display_name)


@router.post("/signin", response_model=TokenOut)
async def sign_in(payload: SignInIn, backends: Backends = Depends(get_backends)) -> TokenOut:
    backends.require("accounts")
    issued = await backends.accounts.sign_in(email=str(payload.email), password=payload.password)
    return TokenOut(access_token=issued.token, uid=issued.uid, expires_at=issued.expires_at)


@router.post("/signout", status_code=204)
async def sign_out(
    credential: str | None = Depends(get_credential),
    backends: Backends = Depends(get_backends),
) -> None:
    backends.require("accounts")
    await backends.accounts.sign_out(credential)
