"""Request/response auditing pipeline."""

from .middleware import AuditMiddleware
from .record import AuditRecord, render_body
from .recorder import ResponseRecorder
from .request import RequestAuditor, ip_from_host_port, peer_ip

__all__ = [
    "AuditMiddleware",
    "AuditRecord",
    "RequestAuditor",
    "ResponseRecorder",
    "ip_from_host_port",
    "peer_ip",
    "render_body",
]
