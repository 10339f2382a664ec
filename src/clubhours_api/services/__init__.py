"""服务层能力导出集合。"""

from clubhours_api.services.auth_flow import (
    AmbiguousSelection,
    AuthFailure,
    AuthState,
    IssuedReset,
    LoggingResetNotifier,
    ResetNotifier,
    SingleSession,
    login,
    request_password_reset,
    reset_password,
    select_member,
)
from clubhours_api.services.credentials import normalize_email, set_password, verify
from clubhours_api.services.dashboard import FamilySummary, MemberContribution, PersonalSummary, build_dashboard
from clubhours_api.services.directory import DirectoryClient, FamilyUnit, ProfileRecord

__all__ = [
    "AmbiguousSelection",
    "AuthFailure",
    "AuthState",
    "DirectoryClient",
    "FamilySummary",
    "FamilyUnit",
    "IssuedReset",
    "LoggingResetNotifier",
    "MemberContribution",
    "PersonalSummary",
    "ProfileRecord",
    "ResetNotifier",
    "SingleSession",
    "build_dashboard",
    "login",
    "normalize_email",
    "request_password_reset",
    "reset_password",
    "select_member",
    "set_password",
    "verify",
]
