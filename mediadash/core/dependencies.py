from fastapi import Request

from mediadash.services.collection_supervisor import CollectionSupervisor
from mediadash.services.log_query import QueryService
from mediadash.services.stream_broker import StreamBroker


def get_supervisor(request: Request) -> CollectionSupervisor:
    """Dependency to provide the application's collection supervisor."""
    return request.app.state.supervisor


def get_query_service(request: Request) -> QueryService:
    """
    Dependency to provide the query service used by the API.

    When demo data is enabled this is the demo-decorated query service.
    """
    return request.app.state.query_service


def get_stream_broker(request: Request) -> StreamBroker:
    """Dependency to provide the live log stream broker."""
    return request.app.state.stream_broker
