"""API route for the shared-PIN login."""
import logging
from fastapi import APIRouter, Form, HTTPException, status
from typing import Annotated

from . import schemas
from . import security as auth_security

logger = logging.getLogger(__name__)
router = APIRouter(
    tags=["Authentication"],
    prefix="/auth"
)

@router.post("/login", response_model=schemas.Token)
async def login_with_pin(
    pin: Annotated[str, Form(min_length=1, max_length=32, description="Shared access PIN")]
):
    if not auth_security.verify_pin(pin):
        logger.info("Rejected login with wrong PIN")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Wrong PIN. Try again.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = auth_security.create_access_token(data={"sub": auth_security.SESSION_SUBJECT})
    return {"access_token": access_token, "token_type": "bearer"}
