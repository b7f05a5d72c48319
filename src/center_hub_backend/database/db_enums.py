'''
Static enums mirroring the database ENUM types.
'''
import enum


# --- Base Enum Class ---
class ListableEnum(str, enum.Enum):
    """A custom Enum base class that can list all member names."""
    @classmethod
    def get_all_names(cls) -> list[str]:
        return [member.value for member in cls]


class UserRole(ListableEnum):
    ADMIN = 'admin'
    PRINCIPAL = 'principal'
    CENTER = 'center'
    TEACHER = 'teacher'
    STUDENT = 'student'
    PARENT = 'parent'
    VENDOR = 'vendor'
    DEVELOPER = 'developer'


class PermissionState(ListableEnum):
    """
    Stored state of a single feature flag.
    UNSET means no row exists; it is only mapped to "enabled" when resolved.
    """
    ENABLED = 'enabled'
    DISABLED = 'disabled'
    UNSET = 'unset'

    @classmethod
    def from_flag(cls, is_enabled: bool | None) -> 'PermissionState':
        if is_enabled is None:
            return cls.UNSET
        return cls.ENABLED if is_enabled else cls.DISABLED

    def resolve(self) -> bool:
        return self is not PermissionState.DISABLED


class TeacherFeature(ListableEnum):
    TAKE_ATTENDANCE = 'take_attendance'
    LESSON_TRACKING = 'lesson_tracking'
    HOMEWORK_MANAGEMENT = 'homework_management'
    PRESCHOOL_ACTIVITIES = 'preschool_activities'
    DISCIPLINE_ISSUES = 'discipline_issues'
    TEST_MANAGEMENT = 'test_management'
    STUDENT_REPORT_ACCESS = 'student_report_access'


class InvoiceStatusEnum(ListableEnum):
    DUE = 'due'
    PARTIAL = 'partial'
    PAID = 'paid'
    OVERDUE = 'overdue'


class PaymentMethodEnum(ListableEnum):
    CASH = 'cash'
    CARD = 'card'
    BANK_TRANSFER = 'bank_transfer'
    CHEQUE = 'cheque'
    ONLINE = 'online'


class PaymentStatusEnum(ListableEnum):
    COMPLETED = 'completed'


class LedgerEntryTypeEnum(ListableEnum):
    INVOICE = 'invoice'
    PAYMENT = 'payment'
    EXPENSE = 'expense'


class GenerationStatusEnum(ListableEnum):
    SUCCESS = 'success'
    PARTIAL = 'partial'


class MeetingTypeEnum(ListableEnum):
    PARENTS = 'parents'
    TEACHERS = 'teachers'
    BOTH = 'both'


class MeetingStatusEnum(ListableEnum):
    SCHEDULED = 'scheduled'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class AttendanceStatusEnum(ListableEnum):
    INVITE = 'invite'
    PENDING = 'pending'
    PRESENT = 'present'
    ABSENT = 'absent'
    EXCUSED = 'excused'


class SeverityEnum(ListableEnum):
    MINOR = 'minor'
    MODERATE = 'moderate'
    MAJOR = 'major'
    SEVERE = 'severe'


class ChangeEventType(ListableEnum):
    INSERT = 'INSERT'
    UPDATE = 'UPDATE'
    DELETE = 'DELETE'
