from passdesk.schemas.auth import LoginRequest, Token
from passdesk.schemas.passes import (
    PassCreate, PassResponse, SlotAssign, SlotResponse, SlotAssignedResponse,
    AttendanceMark, AttendanceResponse, CashPaidResponse, IssueResponse, ScanResponse,
)
from passdesk.schemas.admin import ReconcileResponse, SyncReportResponse

__all__ = [
    "LoginRequest", "Token",
    "PassCreate", "PassResponse", "SlotAssign", "SlotResponse", "SlotAssignedResponse",
    "AttendanceMark", "AttendanceResponse", "CashPaidResponse", "IssueResponse", "ScanResponse",
    "ReconcileResponse", "SyncReportResponse",
]
