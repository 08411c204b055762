"""
Relay router modules for handling requests to various endpoints

This module exports the ``router`` object which includes all known
endpoints and path operations of the upstream services.
"""

from fastapi import APIRouter

# The order of the imports defines the order of the endpoints in the OpenAPI documentation
from . import generic, github, telegram, images


router = APIRouter()
for _module in (generic, github, telegram, images):
    router.include_router(_module.router)
