"""
Pydantic schemas for the coffee catalog API.
"""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict


class CoffeeResponse(BaseModel):
    id: Union[int, str]
    name: str
    image: str = ""
    description: str = ""


class PatchCoffeeRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    description: Optional[str] = None


class AddCoffeeRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    image: Optional[str] = None
    description: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
