from accessmatrix.api.middleware.audit import AuditMiddleware

__all__ = ["AuditMiddleware"]
