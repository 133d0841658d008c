"""
Correlation-ID request tracing
"""
import uuid
import time
import json
from typing import Optional
from fastapi import Request
import logging

logger = logging.getLogger(__name__)

class TraceSpan:
    """One traced unit of work, logged as a single TRACE line when finished"""

    def __init__(self, name: str, service_name: str, trace_id: Optional[str] = None):
        self.span_id = uuid.uuid4().hex[:8]
        self.trace_id = trace_id or uuid.uuid4().hex[:16]
        self.name = name
        self.service_name = service_name
        self.start_time = time.time()
        self.tags = {}
        self.status = "ok"

    def add_tag(self, key: str, value):
        self.tags[key] = value
        return self

    def set_error(self, error: Exception):
        self.status = "error"
        self.add_tag("error.type", type(error).__name__)
        self.add_tag("error.message", str(error))
        return self

    def finish(self):
        duration_ms = (time.time() - self.start_time) * 1000
        trace_data = {
            "service": self.service_name,
            "trace_id": self.trace_id,
            "span_id": self.span_id,
            "operation": self.name,
            "duration_ms": round(duration_ms, 2),
            "status": self.status,
            "tags": self.tags,
        }
        logger.info(f"TRACE: {json.dumps(trace_data, default=str)}")
        return self

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            self.set_error(exc_val)
        self.finish()

def tracing_middleware(service_name: str):
    """Build an HTTP middleware that opens a span per request and echoes X-Trace-ID"""
    async def middleware(request: Request, call_next):
        operation_name = f"{request.method} {request.url.path}"
        with TraceSpan(operation_name, service_name, request.headers.get("X-Trace-ID")) as span:
            request.state.trace_id = span.trace_id
            span.add_tag("http.method", request.method)
            if request.headers.get("authorization", "").startswith("Bearer "):
                span.add_tag("user.authenticated", True)

            response = await call_next(request)
            span.add_tag("http.status_code", response.status_code)
            if response.status_code >= 500:
                span.status = "error"

            response.headers["X-Trace-ID"] = span.trace_id
            return response
    return middleware
