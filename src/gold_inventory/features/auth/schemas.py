"""Pydantic schemas for the PIN login."""

from pydantic import BaseModel


class Token(BaseModel):
    access_token: str
    token_type: str
