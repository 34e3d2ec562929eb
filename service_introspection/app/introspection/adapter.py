"""
Token introspection adapter.
"""

from typing import Optional

from shared.logging import bind_introspection, get_logger
from shared.metrics import MetricsCollector
from shared.errors import (
    IntrospectionParseError,
    NestedClaimError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)
from .claims import REJECT, claims_to_headers, parse_introspection_response
from .context import AdapterResponse, IntrospectionOutcome, IntrospectionState, RequestContext

# nginx convention for "client closed request"
CLIENT_CLOSED_REQUEST = 499


class IntrospectionAdapter:
    """
    Validates a token through one introspection subrequest.

    A 200 reply carrying a JSON object becomes a 204 with one header per
    claim. Any other provider status is returned verbatim with its body.
    Local failures (unparseable body, rejected nested claim) become a 500
    with a fixed message, transport failures a 502 or 504.
    """

    def __init__(self, route: str = "/_oauth2_send_request", header_prefix: str = "Token-",
                 nested_claims: str = REJECT, metrics: Optional[MetricsCollector] = None):
        self.route = route
        self.header_prefix = header_prefix
        self.nested_claims = nested_claims
        self.metrics = metrics
        self.logger = get_logger("introspection.adapter")

    async def handle(self, context: RequestContext) -> AdapterResponse:
        """Run one introspection and produce the terminal response."""
        bind_introspection(route=self.route)
        self.logger.info("Starting introspection subrequest", route=self.route)
        context.state = IntrospectionState.AWAITING_SUBREQUEST

        try:
            reply = await self._subrequest(context)
        except (UpstreamTimeoutError, UpstreamUnavailableError) as e:
            outcome = (IntrospectionOutcome.UPSTREAM_TIMEOUT if isinstance(e, UpstreamTimeoutError)
                       else IntrospectionOutcome.UPSTREAM_UNAVAILABLE)
            self.logger.error("Introspection subrequest failed", code=e.code, details=e.details)
            return self._complete(context, e.status_code, outcome, e.message)

        if await context.is_disconnected():
            self.logger.warning("Client disconnected during introspection", status=reply.status)
            return self._complete(context, CLIENT_CLOSED_REQUEST, IntrospectionOutcome.CANCELLED)

        self.logger.info("Subrequest response status", status=reply.status)
        self.logger.debug("Subrequest response body", body=reply.body)

        if reply.status != 200:
            self.logger.warning("Subrequest failed", status=reply.status)
            return self._complete(context, reply.status, IntrospectionOutcome.PROPAGATED, reply.body)

        try:
            claims = parse_introspection_response(reply.body)
            self.logger.debug("Parsed JSON response successfully", claims=len(claims))
            headers = claims_to_headers(claims, prefix=self.header_prefix, nested=self.nested_claims)
        except IntrospectionParseError as e:
            self.logger.error("Error parsing JSON response", error=e.details.get("parse_error"))
            return self._complete(context, e.status_code, IntrospectionOutcome.PARSE_ERROR, e.message)
        except NestedClaimError as e:
            self.logger.error("Nested claim rejected", claim=e.details.get("claim"))
            return self._complete(context, e.status_code, IntrospectionOutcome.NESTED_REJECTED, e.message)

        for name, value in headers.items():
            self.logger.info("Added header", header=name, value=value)

        return self._complete(context, 204, IntrospectionOutcome.SUCCESS, headers=headers)

    async def _subrequest(self, context: RequestContext):
        if self.metrics is None:
            return await context.subrequest(self.route)
        with self.metrics.time_operation("introspection_subrequest_duration_seconds"):
            return await context.subrequest(self.route)

    def _complete(self, context: RequestContext, status: int, outcome: IntrospectionOutcome,
                  body: str = "", headers=None) -> AdapterResponse:
        response = context.respond(status, outcome, body, headers)
        bind_introspection(outcome=outcome.value)
        if self.metrics is not None:
            self.metrics.record_introspection(outcome.value)
        self.logger.info("Introspection completed", status=status, outcome=outcome.value)
        return response
