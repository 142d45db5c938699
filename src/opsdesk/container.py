from __future__ import annotations

from dataclasses import dataclass

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .auth.policy import PolicyEngine, build_default_policy
from .auth.tokens import TokenService
from .cash_advance.mysql_cash_advance_repository import MySQLCashAdvanceRepository
from .cash_advance.service import CashAdvanceService
from .core.constants import IMPORT_BATCH_SIZE, IMPORT_MAX_ROWS
from .database.connection import DBConfig, DatabaseConnection
from .imports.mysql_import_log_repository import MySQLImportLogRepository
from .imports.service import ImportRunner
from .inventory.mysql_inventory_repository import MySQLInventoryRepository
from .inventory.service import InventoryService
from .leave.mysql_leave_repository import MySQLLeaveRepository
from .leave.service import LeaveService
from .liquidation.mysql_liquidation_repository import MySQLLiquidationRepository
from .liquidation.service import LiquidationService
from .notifications.email import EmailNotifier, SmtpSettings
from .overtime.mysql_overtime_repository import MySQLOvertimeRepository
from .overtime.service import OvertimeService
from .tickets.mysql_ticket_repository import MySQLTicketRepository
from .tickets.service import TicketService
from .users.mysql_user_repository import MySQLProfileRepository
from .users.service import AuthService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection
    policy: PolicyEngine

    profiles_repo: MySQLProfileRepository
    attendance_repo: MySQLAttendanceRepository
    overtime_repo: MySQLOvertimeRepository
    leave_repo: MySQLLeaveRepository
    cash_advance_repo: MySQLCashAdvanceRepository
    liquidation_repo: MySQLLiquidationRepository
    ticket_repo: MySQLTicketRepository
    inventory_repo: MySQLInventoryRepository
    import_log_repo: MySQLImportLogRepository

    auth_service: AuthService
    attendance_service: AttendanceService
    overtime_service: OvertimeService
    leave_service: LeaveService
    cash_advance_service: CashAdvanceService
    liquidation_service: LiquidationService
    ticket_service: TicketService
    inventory_service: InventoryService


def build_container(settings) -> Container:
    """Wire repositories and services from a settings module."""
    conn = DatabaseConnection(DBConfig.from_dict(getattr(settings, "DB_CONFIG")))

    policy = build_default_policy(
        overtime_level1_positions=getattr(settings, "OVERTIME_LEVEL1_POSITIONS", ()),
        overtime_level2_positions=getattr(settings, "OVERTIME_LEVEL2_POSITIONS", ()),
        leave_director_only_positions=getattr(settings, "LEAVE_DIRECTOR_ONLY_POSITIONS", ()),
    )
    tokens = TokenService(
        getattr(settings, "SECRET_KEY"),
        algorithm=getattr(settings, "JWT_ALGORITHM", "HS256"),
        ttl_minutes=getattr(settings, "TOKEN_TTL_MINUTES", 720),
    )
    notifier = EmailNotifier(
        SmtpSettings(
            server=getattr(settings, "SMTP_SERVER", ""),
            port=int(getattr(settings, "SMTP_PORT", 587)),
            username=getattr(settings, "SMTP_USERNAME", ""),
            password=getattr(settings, "SMTP_PASSWORD", ""),
            from_email=getattr(settings, "FROM_EMAIL", "no-reply@opsdesk.local"),
        )
    )

    profiles_repo = MySQLProfileRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    overtime_repo = MySQLOvertimeRepository(conn)
    leave_repo = MySQLLeaveRepository(conn)
    cash_advance_repo = MySQLCashAdvanceRepository(conn)
    liquidation_repo = MySQLLiquidationRepository(conn)
    ticket_repo = MySQLTicketRepository(conn)
    inventory_repo = MySQLInventoryRepository(conn)
    import_log_repo = MySQLImportLogRepository(conn)

    runner = ImportRunner(
        import_log_repo,
        batch_size=getattr(settings, "IMPORT_BATCH_SIZE", IMPORT_BATCH_SIZE),
        max_rows=getattr(settings, "IMPORT_MAX_ROWS", IMPORT_MAX_ROWS),
    )

    return Container(
        conn=conn,
        policy=policy,
        profiles_repo=profiles_repo,
        attendance_repo=attendance_repo,
        overtime_repo=overtime_repo,
        leave_repo=leave_repo,
        cash_advance_repo=cash_advance_repo,
        liquidation_repo=liquidation_repo,
        ticket_repo=ticket_repo,
        inventory_repo=inventory_repo,
        import_log_repo=import_log_repo,
        auth_service=AuthService(profiles_repo, tokens),
        attendance_service=AttendanceService(attendance_repo, policy=policy),
        overtime_service=OvertimeService(
            overtime_repo,
            attendance_repo,
            policy=policy,
            auto_approve_positions=getattr(settings, "OVERTIME_AUTO_APPROVE_POSITIONS", ()),
        ),
        leave_service=LeaveService(leave_repo, profiles_repo, policy=policy),
        cash_advance_service=CashAdvanceService(cash_advance_repo, profiles_repo, policy=policy, notifier=notifier),
        liquidation_service=LiquidationService(liquidation_repo, cash_advance_repo, profiles_repo, policy=policy),
        ticket_service=TicketService(ticket_repo, inventory_repo, policy=policy, runner=runner),
        inventory_service=InventoryService(inventory_repo, runner=runner, policy=policy),
    )
