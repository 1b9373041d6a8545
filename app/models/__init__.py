# app/models/__init__.py
# Import all models here so SQLAlchemy registers them into Base.metadata.

from app.models.workspace import DefaultDomains, RestrictedToken, User, Workspace, WorkspaceUser  # noqa: F401
from app.models.partner import Partner  # noqa: F401
from app.models.program import Program, ProgramEnrollment  # noqa: F401
from app.models.discount import Discount  # noqa: F401
from app.models.commission import Commission, Customer  # noqa: F401

from app.models.outbox import OutboxEvent  # noqa: F401
from app.models.audit_log import AuditLog  # noqa: F401
