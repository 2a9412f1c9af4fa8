"""Leave module — LeaveRequest model, schemas and repository."""

from hrdash.leave.models import LeaveRequest

__all__ = ["LeaveRequest"]
