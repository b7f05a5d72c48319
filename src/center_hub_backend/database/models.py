from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, Enum, ForeignKeyConstraint, Index, Integer, Numeric, PrimaryKeyConstraint, String, Text, Time, UniqueConstraint, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
import datetime
import decimal
import uuid

from .db_enums import (
    UserRole,
    InvoiceStatusEnum,
    PaymentMethodEnum,
    PaymentStatusEnum,
    LedgerEntryTypeEnum,
    GenerationStatusEnum,
    MeetingTypeEnum,
    MeetingStatusEnum,
    AttendanceStatusEnum,
    SeverityEnum
)


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class Base(DeclarativeBase):
    pass



class Centers(Base):
    __tablename__ = 'centers'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='centers_pkey'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)


class Teachers(Base):
    __tablename__ = 'teachers'
    __table_args__ = (
        ForeignKeyConstraint(['center_id'], ['centers.id'], ondelete='CASCADE', name='teachers_center_id_fkey'),
        PrimaryKeyConstraint('id', name='teachers_pkey'),
        Index('idx_teachers_center_id', 'center_id')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    center_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    name: Mapped[str] = mapped_column(Text)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)


class Students(Base):
    __tablename__ = 'students'
    __table_args__ = (
        ForeignKeyConstraint(['center_id'], ['centers.id'], ondelete='CASCADE', name='students_center_id_fkey'),
        PrimaryKeyConstraint('id', name='students_pkey'),
        Index('idx_students_center_id', 'center_id')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    center_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    name: Mapped[str] = mapped_column(Text)
    grade: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)


class Users(Base):
    __tablename__ = 'users'
    __table_args__ = (
        ForeignKeyConstraint(['center_id'], ['centers.id'], ondelete='SET NULL', name='users_center_id_fkey'),
        ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='SET NULL', name='users_student_id_fkey'),
        ForeignKeyConstraint(['teacher_id'], ['teachers.id'], ondelete='SET NULL', name='users_teacher_id_fkey'),
        PrimaryKeyConstraint('id', name='users_pkey'),
        UniqueConstraint('username', name='users_username_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(String(255))
    password: Mapped[str] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(Enum(*UserRole.get_all_names(), name='user_role'))
    center_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    student_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    teacher_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    first_name: Mapped[Optional[str]] = mapped_column(Text)
    last_name: Mapped[Optional[str]] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    last_login: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)


class ParentStudents(Base):
    __tablename__ = 'parent_students'
    __table_args__ = (
        ForeignKeyConstraint(['parent_user_id'], ['users.id'], ondelete='CASCADE', name='parent_students_parent_user_id_fkey'),
        ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE', name='parent_students_student_id_fkey'),
        PrimaryKeyConstraint('id', name='parent_students_pkey'),
        UniqueConstraint('parent_user_id', 'student_id', name='parent_students_parent_user_id_student_id_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    parent_user_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)


# --- Feature Permissions ---

class CenterFeaturePermissions(Base):
    __tablename__ = 'center_feature_permissions'
    __table_args__ = (
        ForeignKeyConstraint(['center_id'], ['centers.id'], ondelete='CASCADE', name='center_feature_permissions_center_id_fkey'),
        PrimaryKeyConstraint('id', name='center_feature_permissions_pkey'),
        UniqueConstraint('center_id', 'feature_name', name='center_feature_permissions_center_id_feature_name_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    center_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    feature_name: Mapped[str] = mapped_column(Text)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow, onupdate=_utcnow)


class TeacherFeaturePermissions(Base):
    __tablename__ = 'teacher_feature_permissions'
    __table_args__ = (
        ForeignKeyConstraint(['teacher_id'], ['teachers.id'], ondelete='CASCADE', name='teacher_feature_permissions_teacher_id_fkey'),
        PrimaryKeyConstraint('id', name='teacher_feature_permissions_pkey'),
        UniqueConstraint('teacher_id', 'feature_name', name='teacher_feature_permissions_teacher_id_feature_name_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    teacher_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    feature_name: Mapped[str] = mapped_column(Text)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow, onupdate=_utcnow)


# --- Fee Setup ---

class FeeHeadings(Base):
    __tablename__ = 'fee_headings'
    __table_args__ = (
        ForeignKeyConstraint(['center_id'], ['centers.id'], ondelete='CASCADE', name='fee_headings_center_id_fkey'),
        PrimaryKeyConstraint('id', name='fee_headings_pkey')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    center_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    name: Mapped[str] = mapped_column(Text)
    description: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)


class FeeStructures(Base):
    __tablename__ = 'fee_structures'
    __table_args__ = (
        ForeignKeyConstraint(['center_id'], ['centers.id'], ondelete='CASCADE', name='fee_structures_center_id_fkey'),
        PrimaryKeyConstraint('id', name='fee_structures_pkey')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    center_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    name: Mapped[str] = mapped_column(Text)
    grade: Mapped[Optional[str]] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)

    items: Mapped[list['FeeStructureItems']] = relationship('FeeStructureItems', back_populates='fee_structure')


class FeeStructureItems(Base):
    __tablename__ = 'fee_structure_items'
    __table_args__ = (
        CheckConstraint('amount >= 0', name='fee_structure_items_amount_check'),
        ForeignKeyConstraint(['fee_structure_id'], ['fee_structures.id'], ondelete='CASCADE', name='fee_structure_items_fee_structure_id_fkey'),
        ForeignKeyConstraint(['fee_heading_id'], ['fee_headings.id'], name='fee_structure_items_fee_heading_id_fkey'),
        PrimaryKeyConstraint('id', name='fee_structure_items_pkey')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    fee_structure_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    fee_heading_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    amount: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    fee_structure: Mapped['FeeStructures'] = relationship('FeeStructures', back_populates='items')


class StudentFeeAssignments(Base):
    __tablename__ = 'student_fee_assignments'
    __table_args__ = (
        ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE', name='student_fee_assignments_student_id_fkey'),
        ForeignKeyConstraint(['fee_structure_id'], ['fee_structures.id'], ondelete='CASCADE', name='student_fee_assignments_fee_structure_id_fkey'),
        PrimaryKeyConstraint('id', name='student_fee_assignments_pkey'),
        Index('idx_student_fee_assignments_student_id', 'student_id')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    fee_structure_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)


class StudentCustomFees(Base):
    __tablename__ = 'student_custom_fees'
    __table_args__ = (
        CheckConstraint('amount >= 0', name='student_custom_fees_amount_check'),
        ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE', name='student_custom_fees_student_id_fkey'),
        PrimaryKeyConstraint('id', name='student_custom_fees_pkey')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    description: Mapped[Optional[str]] = mapped_column(Text)
    amount: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2))
    effective_from: Mapped[datetime.date] = mapped_column(Date)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


# --- Invoicing & Payments ---

class Invoices(Base):
    __tablename__ = 'invoices'
    __table_args__ = (
        CheckConstraint('remaining_amount >= 0', name='invoices_remaining_amount_check'),
        CheckConstraint('paid_amount >= 0', name='invoices_paid_amount_check'),
        ForeignKeyConstraint(['center_id'], ['centers.id'], ondelete='CASCADE', name='invoices_center_id_fkey'),
        ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE', name='invoices_student_id_fkey'),
        PrimaryKeyConstraint('id', name='invoices_pkey'),
        UniqueConstraint('invoice_number', name='invoices_invoice_number_key'),
        Index('idx_invoices_center_id', 'center_id')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    center_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    invoice_number: Mapped[str] = mapped_column(Text)
    invoice_date: Mapped[datetime.date] = mapped_column(Date)
    due_date: Mapped[datetime.date] = mapped_column(Date)
    total_amount: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2))
    paid_amount: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2), default=decimal.Decimal('0.00'))
    remaining_amount: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2))
    status: Mapped[str] = mapped_column(Enum(*InvoiceStatusEnum.get_all_names(), name='invoice_status_enum'), default=InvoiceStatusEnum.DUE.value)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow, onupdate=_utcnow)

    items: Mapped[list['InvoiceItems']] = relationship('InvoiceItems', back_populates='invoice')
    student: Mapped['Students'] = relationship('Students')


class InvoiceItems(Base):
    __tablename__ = 'invoice_items'
    __table_args__ = (
        ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ondelete='CASCADE', name='invoice_items_invoice_id_fkey'),
        ForeignKeyConstraint(['fee_heading_id'], ['fee_headings.id'], name='invoice_items_fee_heading_id_fkey'),
        PrimaryKeyConstraint('id', name='invoice_items_pkey')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    invoice_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    fee_heading_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    amount: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2))

    invoice: Mapped['Invoices'] = relationship('Invoices', back_populates='items')


class Payments(Base):
    __tablename__ = 'payments'
    __table_args__ = (
        CheckConstraint('amount > 0', name='payments_amount_check'),
        ForeignKeyConstraint(['center_id'], ['centers.id'], ondelete='CASCADE', name='payments_center_id_fkey'),
        ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE', name='payments_student_id_fkey'),
        ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ondelete='CASCADE', name='payments_invoice_id_fkey'),
        ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL', name='payments_created_by_fkey'),
        PrimaryKeyConstraint('id', name='payments_pkey')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    center_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    invoice_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    amount: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2))
    payment_date: Mapped[datetime.date] = mapped_column(Date)
    payment_method: Mapped[str] = mapped_column(Enum(*PaymentMethodEnum.get_all_names(), name='payment_method_enum'))
    reference_number: Mapped[Optional[str]] = mapped_column(Text)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(Enum(*PaymentStatusEnum.get_all_names(), name='payment_status_enum'), default=PaymentStatusEnum.COMPLETED.value)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)


class LedgerEntries(Base):
    __tablename__ = 'ledger_entries'
    __table_args__ = (
        ForeignKeyConstraint(['center_id'], ['centers.id'], ondelete='CASCADE', name='ledger_entries_center_id_fkey'),
        ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='SET NULL', name='ledger_entries_student_id_fkey'),
        PrimaryKeyConstraint('id', name='ledger_entries_pkey'),
        Index('idx_ledger_entries_center_id', 'center_id')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    center_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    student_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    entry_type: Mapped[str] = mapped_column(Enum(*LedgerEntryTypeEnum.get_all_names(), name='ledger_entry_type_enum'))
    reference_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    reference_table: Mapped[Optional[str]] = mapped_column(Text)
    amount: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2))
    entry_date: Mapped[datetime.date] = mapped_column(Date)
    description: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)


class InvoiceGenerationLogs(Base):
    __tablename__ = 'invoice_generation_logs'
    __table_args__ = (
        ForeignKeyConstraint(['center_id'], ['centers.id'], ondelete='CASCADE', name='invoice_generation_logs_center_id_fkey'),
        PrimaryKeyConstraint('id', name='invoice_generation_logs_pkey'),
        UniqueConstraint('center_id', 'generation_date', name='invoice_generation_logs_center_id_generation_date_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    center_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    generation_date: Mapped[datetime.date] = mapped_column(Date)
    invoices_generated: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(Enum(*GenerationStatusEnum.get_all_names(), name='generation_status_enum'))
    error_message: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)


class ExpenseCategories(Base):
    __tablename__ = 'expense_categories'
    __table_args__ = (
        ForeignKeyConstraint(['center_id'], ['centers.id'], ondelete='CASCADE', name='expense_categories_center_id_fkey'),
        PrimaryKeyConstraint('id', name='expense_categories_pkey')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    center_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    name: Mapped[str] = mapped_column(Text)
    description: Mapped[Optional[str]] = mapped_column(Text)


class Expenses(Base):
    __tablename__ = 'expenses'
    __table_args__ = (
        CheckConstraint('amount > 0', name='expenses_amount_check'),
        ForeignKeyConstraint(['center_id'], ['centers.id'], ondelete='CASCADE', name='expenses_center_id_fkey'),
        ForeignKeyConstraint(['expense_category_id'], ['expense_categories.id'], name='expenses_expense_category_id_fkey'),
        ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL', name='expenses_created_by_fkey'),
        PrimaryKeyConstraint('id', name='expenses_pkey')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    center_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    expense_category_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    amount: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2))
    description: Mapped[Optional[str]] = mapped_column(Text)
    expense_date: Mapped[datetime.date] = mapped_column(Date)
    reference_number: Mapped[Optional[str]] = mapped_column(Text)
    payment_method: Mapped[str] = mapped_column(Enum(*PaymentMethodEnum.get_all_names(), name='payment_method_enum'))
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)


# --- Meetings ---

class Meetings(Base):
    __tablename__ = 'meetings'
    __table_args__ = (
        ForeignKeyConstraint(['center_id'], ['centers.id'], ondelete='CASCADE', name='meetings_center_id_fkey'),
        ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL', name='meetings_created_by_fkey'),
        PrimaryKeyConstraint('id', name='meetings_pkey')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    center_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    title: Mapped[str] = mapped_column(Text)
    agenda: Mapped[Optional[str]] = mapped_column(Text)
    meeting_date: Mapped[datetime.date] = mapped_column(Date)
    meeting_time: Mapped[Optional[datetime.time]] = mapped_column(Time)
    meeting_type: Mapped[str] = mapped_column(Enum(*MeetingTypeEnum.get_all_names(), name='meeting_type_enum'))
    status: Mapped[str] = mapped_column(Enum(*MeetingStatusEnum.get_all_names(), name='meeting_status_enum'), default=MeetingStatusEnum.SCHEDULED.value)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow, onupdate=_utcnow)


class MeetingAttendees(Base):
    __tablename__ = 'meeting_attendees'
    __table_args__ = (
        CheckConstraint('(student_id IS NULL) <> (teacher_id IS NULL)', name='meeting_attendees_one_invitee_check'),
        ForeignKeyConstraint(['meeting_id'], ['meetings.id'], ondelete='CASCADE', name='meeting_attendees_meeting_id_fkey'),
        ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE', name='meeting_attendees_student_id_fkey'),
        ForeignKeyConstraint(['teacher_id'], ['teachers.id'], ondelete='CASCADE', name='meeting_attendees_teacher_id_fkey'),
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL', name='meeting_attendees_user_id_fkey'),
        PrimaryKeyConstraint('id', name='meeting_attendees_pkey'),
        Index('idx_meeting_attendees_meeting_id', 'meeting_id')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    meeting_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    student_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    teacher_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    attendance_status: Mapped[str] = mapped_column(Enum(*AttendanceStatusEnum.get_all_names(), name='attendance_status_enum'), default=AttendanceStatusEnum.INVITE.value)
    attended: Mapped[bool] = mapped_column(Boolean, default=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)


class MeetingConclusions(Base):
    __tablename__ = 'meeting_conclusions'
    __table_args__ = (
        ForeignKeyConstraint(['meeting_id'], ['meetings.id'], ondelete='CASCADE', name='meeting_conclusions_meeting_id_fkey'),
        ForeignKeyConstraint(['recorded_by'], ['users.id'], ondelete='SET NULL', name='meeting_conclusions_recorded_by_fkey'),
        PrimaryKeyConstraint('id', name='meeting_conclusions_pkey'),
        UniqueConstraint('meeting_id', name='meeting_conclusions_meeting_id_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    meeting_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    conclusion_notes: Mapped[str] = mapped_column(Text)
    recorded_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow, onupdate=_utcnow)


# --- Chat ---

class ChatConversations(Base):
    __tablename__ = 'chat_conversations'
    __table_args__ = (
        ForeignKeyConstraint(['center_id'], ['centers.id'], ondelete='CASCADE', name='chat_conversations_center_id_fkey'),
        ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE', name='chat_conversations_student_id_fkey'),
        ForeignKeyConstraint(['parent_user_id'], ['users.id'], ondelete='CASCADE', name='chat_conversations_parent_user_id_fkey'),
        PrimaryKeyConstraint('id', name='chat_conversations_pkey'),
        UniqueConstraint('center_id', 'parent_user_id', 'student_id', name='chat_conversations_center_parent_student_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    center_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    parent_user_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)

    student: Mapped['Students'] = relationship('Students')
    parent: Mapped['Users'] = relationship('Users')


class ChatMessages(Base):
    __tablename__ = 'chat_messages'
    __table_args__ = (
        ForeignKeyConstraint(['conversation_id'], ['chat_conversations.id'], ondelete='CASCADE', name='chat_messages_conversation_id_fkey'),
        ForeignKeyConstraint(['sender_user_id'], ['users.id'], ondelete='CASCADE', name='chat_messages_sender_user_id_fkey'),
        PrimaryKeyConstraint('id', name='chat_messages_pkey'),
        Index('idx_chat_messages_conversation_id', 'conversation_id')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    conversation_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    sender_user_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    content: Mapped[str] = mapped_column(Text)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)


# --- Catalogs ---

class DisciplineCategories(Base):
    __tablename__ = 'discipline_categories'
    __table_args__ = (
        ForeignKeyConstraint(['center_id'], ['centers.id'], ondelete='CASCADE', name='discipline_categories_center_id_fkey'),
        PrimaryKeyConstraint('id', name='discipline_categories_pkey')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    center_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    name: Mapped[str] = mapped_column(Text)
    description: Mapped[Optional[str]] = mapped_column(Text)
    default_severity: Mapped[str] = mapped_column(Enum(*SeverityEnum.get_all_names(), name='severity_enum'), default=SeverityEnum.MINOR.value)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)


class ActivityTypes(Base):
    __tablename__ = 'activity_types'
    __table_args__ = (
        ForeignKeyConstraint(['center_id'], ['centers.id'], ondelete='CASCADE', name='activity_types_center_id_fkey'),
        PrimaryKeyConstraint('id', name='activity_types_pkey')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    center_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    name: Mapped[str] = mapped_column(Text)
    description: Mapped[Optional[str]] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)
