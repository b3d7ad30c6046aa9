"""
HTTP routes for the coffee catalog.
"""

from __future__ import annotations

import logging
from typing import Type, TypeVar

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ValidationError

from coffee_api.db import CoffeeRecord
from coffee_api.dependencies import get_catalog, require_api_secret
from coffee_api.errors import BadRequest
from coffee_api.schemas import (
    AddCoffeeRequest,
    CoffeeResponse,
    ErrorResponse,
    PatchCoffeeRequest,
)
from coffee_api.service import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter(
    responses={
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    }
)

BANNER = "Coffee API is running"

ModelT = TypeVar("ModelT", bound=BaseModel)


def _to_response(coffee: CoffeeRecord) -> CoffeeResponse:
    return CoffeeResponse(**coffee.as_dict())


def _parse_body(model: Type[ModelT], body: dict) -> ModelT:
    try:
        return model.model_validate(body)
    except ValidationError as exc:
        fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
        raise BadRequest(f"Invalid field: {', '.join(fields)}") from exc


@router.get("/", response_class=PlainTextResponse)
def index():
    return BANNER


@router.get("/coffees", response_model=list[CoffeeResponse])
def list_coffees(catalog: CatalogService = Depends(get_catalog)):
    return [_to_response(coffee) for coffee in catalog.list_coffees()]


@router.get("/coffee/name/{name}", response_model=CoffeeResponse)
def get_coffee_by_name(name: str, catalog: CatalogService = Depends(get_catalog)):
    return _to_response(catalog.get_coffee_by_name(name))


@router.get("/coffee/desc/{desc}", response_model=list[CoffeeResponse])
def search_coffees_by_description(
    desc: str, catalog: CatalogService = Depends(get_catalog)
):
    return [_to_response(coffee) for coffee in catalog.search_by_description(desc)]


@router.get("/coffee/{coffee_id}", response_model=CoffeeResponse)
def get_coffee(coffee_id: str, catalog: CatalogService = Depends(get_catalog)):
    return _to_response(catalog.get_coffee(coffee_id))


@router.patch("/coffee/{coffee_id}", response_model=CoffeeResponse)
def patch_coffee(
    coffee_id: str,
    body: dict = Depends(require_api_secret),
    catalog: CatalogService = Depends(get_catalog),
):
    payload = _parse_body(PatchCoffeeRequest, body)
    coffee = catalog.patch_coffee(
        coffee_id, name=payload.name, description=payload.description
    )
    return _to_response(coffee)


@router.post("/add-coffee", response_model=CoffeeResponse, status_code=201)
def add_coffee(
    body: dict = Depends(require_api_secret),
    catalog: CatalogService = Depends(get_catalog),
):
    payload = _parse_body(AddCoffeeRequest, body)
    coffee = catalog.add_coffee(
        payload.name, image=payload.image, description=payload.description
    )
    return _to_response(coffee)
