"""Shared FastAPI dependencies for the routers and the dashboard socket."""

from fastapi import Depends
from fastapi.requests import HTTPConnection

from taskmanager.services.filters import FilterBuilder
from taskmanager.validation import ValidatorTable


def get_validators(conn: HTTPConnection) -> ValidatorTable:
    """The validator table built once in create_app()."""
    return conn.app.state.validators


def get_filter_builder(
    validators: ValidatorTable = Depends(get_validators),
) -> FilterBuilder:
    return FilterBuilder(validators)
