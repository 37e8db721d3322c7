from typing import Any, Optional
import datetime
import decimal
import uuid

from sqlalchemy import ARRAY, JSON, Boolean, Date, DateTime, ForeignKeyConstraint, Index, Integer, Numeric, PrimaryKeyConstraint, SmallInteger, String, Text, UniqueConstraint, Uuid, func, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from nodo360.libs.formats.datetime import now

# JSONB / text[] en Postgres, JSON en el resto de dialectos (tests con SQLite)
JSONType = JSON().with_variant(JSONB(), 'postgresql')
TextArray = JSON().with_variant(ARRAY(Text()), 'postgresql')


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = 'users'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='users_pkey'),
        UniqueConstraint('email', name='users_email_key'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(Text, nullable=False)
    full_name: Mapped[Optional[str]] = mapped_column(Text)
    avatar_url: Mapped[Optional[str]] = mapped_column(Text)
    role: Mapped[str] = mapped_column(String, nullable=False, default='student', server_default=text("'student'"))
    is_beta: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_suspended: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    suspended_reason: Mapped[Optional[str]] = mapped_column(Text)
    active_path_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, onupdate=now, server_default=func.now())
    last_seen_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)

    courses: Mapped[list['Courses']] = relationship('Courses', back_populates='instructor')
    bookmarks: Mapped[list['Bookmarks']] = relationship('Bookmarks', back_populates='user')


class Courses(Base):
    __tablename__ = 'courses'
    __table_args__ = (
        ForeignKeyConstraint(['instructor_id'], ['users.id'], ondelete='SET NULL', name='courses_instructor_id_fkey'),
        PrimaryKeyConstraint('id', name='courses_pkey'),
        UniqueConstraint('slug', name='courses_slug_key'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    slug: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    level: Mapped[str] = mapped_column(String, nullable=False, default='beginner')
    status: Mapped[str] = mapped_column(String, nullable=False, default='draft')
    price: Mapped[decimal.Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=decimal.Decimal('0'))
    is_free: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_premium: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_certifiable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    instructor_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    total_modules: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_lessons: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    enrolled_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, onupdate=now, server_default=func.now())
    published_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)

    instructor: Mapped[Optional['User']] = relationship('User', back_populates='courses')
    modules: Mapped[list['Modules']] = relationship('Modules', back_populates='course', order_by='Modules.order_index')
    enrollments: Mapped[list['CourseEnrollments']] = relationship('CourseEnrollments', back_populates='course')


class Modules(Base):
    __tablename__ = 'modules'
    __table_args__ = (
        ForeignKeyConstraint(['course_id'], ['courses.id'], ondelete='CASCADE', name='modules_course_id_fkey'),
        PrimaryKeyConstraint('id', name='modules_pkey'),
        UniqueConstraint('course_id', 'order_index', name='modules_course_id_order_index_key'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    course_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[Optional[str]] = mapped_column(Text)
    description: Mapped[Optional[str]] = mapped_column(Text)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)
    requires_quiz: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, onupdate=now, server_default=func.now())

    course: Mapped['Courses'] = relationship('Courses', back_populates='modules')
    lessons: Mapped[list['Lessons']] = relationship('Lessons', back_populates='module', order_by='Lessons.order_index')


class Lessons(Base):
    __tablename__ = 'lessons'
    __table_args__ = (
        ForeignKeyConstraint(['module_id'], ['modules.id'], ondelete='CASCADE', name='lessons_module_id_fkey'),
        PrimaryKeyConstraint('id', name='lessons_pkey'),
        UniqueConstraint('module_id', 'order_index', name='lessons_module_id_order_index_key'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    module_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)
    video_url: Mapped[Optional[str]] = mapped_column(Text)
    is_free_preview: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, onupdate=now, server_default=func.now())

    module: Mapped['Modules'] = relationship('Modules', back_populates='lessons')


class CourseEnrollments(Base):
    __tablename__ = 'course_enrollments'
    __table_args__ = (
        ForeignKeyConstraint(['course_id'], ['courses.id'], ondelete='CASCADE', name='course_enrollments_course_id_fkey'),
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='course_enrollments_user_id_fkey'),
        PrimaryKeyConstraint('id', name='course_enrollments_pkey'),
        UniqueConstraint('user_id', 'course_id', name='course_enrollments_user_id_course_id_key'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    course_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    enrolled_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())
    last_accessed_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    completed_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    progress_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    course: Mapped['Courses'] = relationship('Courses', back_populates='enrollments')


class UserProgress(Base):
    __tablename__ = 'user_progress'
    __table_args__ = (
        ForeignKeyConstraint(['lesson_id'], ['lessons.id'], ondelete='CASCADE', name='user_progress_lesson_id_fkey'),
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='user_progress_user_id_fkey'),
        PrimaryKeyConstraint('id', name='user_progress_pkey'),
        UniqueConstraint('user_id', 'lesson_id', name='user_progress_user_id_lesson_id_key'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    lesson_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, onupdate=now, server_default=func.now())


class QuizQuestions(Base):
    __tablename__ = 'quiz_questions'
    __table_args__ = (
        ForeignKeyConstraint(['module_id'], ['modules.id'], ondelete='CASCADE', name='quiz_questions_module_id_fkey'),
        PrimaryKeyConstraint('id', name='quiz_questions_pkey'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    module_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[list] = mapped_column(JSONType, nullable=False)
    correct_answer: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    explanation: Mapped[Optional[str]] = mapped_column(Text)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class QuizAttempts(Base):
    __tablename__ = 'quiz_attempts'
    __table_args__ = (
        ForeignKeyConstraint(['module_id'], ['modules.id'], ondelete='CASCADE', name='quiz_attempts_module_id_fkey'),
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='quiz_attempts_user_id_fkey'),
        PrimaryKeyConstraint('id', name='quiz_attempts_pkey'),
        Index('idx_quiz_attempts_user_module', 'user_id', 'module_id'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    module_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    correct_answers: Mapped[int] = mapped_column(Integer, nullable=False)
    passed: Mapped[bool] = mapped_column(Boolean, nullable=False)
    answers: Mapped[Optional[list]] = mapped_column(JSONType)
    completed_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())


class Certificates(Base):
    __tablename__ = 'certificates'
    __table_args__ = (
        ForeignKeyConstraint(['course_id'], ['courses.id'], ondelete='CASCADE', name='certificates_course_id_fkey'),
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='certificates_user_id_fkey'),
        PrimaryKeyConstraint('id', name='certificates_pkey'),
        UniqueConstraint('certificate_number', name='certificates_certificate_number_key'),
        UniqueConstraint('user_id', 'course_id', name='certificates_user_id_course_id_key'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    course_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False, default='course')
    certificate_number: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    verification_url: Mapped[Optional[str]] = mapped_column(Text)
    issued_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())

    user: Mapped['User'] = relationship('User')
    course: Mapped['Courses'] = relationship('Courses')


class Bookmarks(Base):
    __tablename__ = 'bookmarks'
    __table_args__ = (
        ForeignKeyConstraint(['lesson_id'], ['lessons.id'], ondelete='CASCADE', name='bookmarks_lesson_id_fkey'),
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='bookmarks_user_id_fkey'),
        PrimaryKeyConstraint('id', name='bookmarks_pkey'),
        UniqueConstraint('user_id', 'lesson_id', name='bookmarks_user_id_lesson_id_key'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    lesson_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())

    user: Mapped['User'] = relationship('User', back_populates='bookmarks')
    lesson: Mapped['Lessons'] = relationship('Lessons')


class Entitlements(Base):
    __tablename__ = 'entitlements'
    __table_args__ = (
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='entitlements_user_id_fkey'),
        PrimaryKeyConstraint('id', name='entitlements_pkey'),
        Index('idx_entitlements_user_active', 'user_id', 'is_active'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False)
    target_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    granted_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    reason: Mapped[Optional[str]] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    starts_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())
    expires_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, onupdate=now, server_default=func.now())


class SystemSettings(Base):
    __tablename__ = 'system_settings'
    __table_args__ = (
        PrimaryKeyConstraint('key', name='system_settings_pkey'),
    )

    key: Mapped[str] = mapped_column(Text, primary_key=True)
    value: Mapped[Optional[dict]] = mapped_column(JSONType)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, onupdate=now, server_default=func.now())


class UserGamificationStats(Base):
    __tablename__ = 'user_gamification_stats'
    __table_args__ = (
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='user_gamification_stats_user_id_fkey'),
        PrimaryKeyConstraint('user_id', name='user_gamification_stats_pkey'),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    total_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    xp_to_next_level: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    total_badges: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_activity_date: Mapped[Optional[datetime.date]] = mapped_column(Date)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, onupdate=now, server_default=func.now())


class XpEvents(Base):
    __tablename__ = 'xp_events'
    __table_args__ = (
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='xp_events_user_id_fkey'),
        PrimaryKeyConstraint('id', name='xp_events_pkey'),
        Index('idx_xp_events_user_created', 'user_id', 'created_at'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    event_type: Mapped[str] = mapped_column(String, nullable=False)
    xp_earned: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())


class Badges(Base):
    __tablename__ = 'badges'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='badges_pkey'),
        UniqueConstraint('slug', name='badges_slug_key'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    slug: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    icon: Mapped[Optional[str]] = mapped_column(Text)
    rarity: Mapped[Optional[str]] = mapped_column(String)
    category: Mapped[Optional[str]] = mapped_column(String)
    requirement_type: Mapped[Optional[str]] = mapped_column(String)
    requirement_value: Mapped[Optional[int]] = mapped_column(Integer)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class UserBadges(Base):
    __tablename__ = 'user_badges'
    __table_args__ = (
        ForeignKeyConstraint(['badge_id'], ['badges.id'], ondelete='CASCADE', name='user_badges_badge_id_fkey'),
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='user_badges_user_id_fkey'),
        PrimaryKeyConstraint('id', name='user_badges_pkey'),
        UniqueConstraint('user_id', 'badge_id', name='user_badges_user_id_badge_id_key'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    badge_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    unlocked_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())

    badge: Mapped['Badges'] = relationship('Badges')


class GovernanceCategories(Base):
    __tablename__ = 'governance_categories'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='governance_categories_pkey'),
        UniqueConstraint('slug', name='governance_categories_slug_key'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    slug: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    icon: Mapped[Optional[str]] = mapped_column(Text)
    color: Mapped[Optional[str]] = mapped_column(Text)
    proposal_level: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=1)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())


class GovernanceProposals(Base):
    __tablename__ = 'governance_proposals'
    __table_args__ = (
        ForeignKeyConstraint(['author_id'], ['users.id'], ondelete='CASCADE', name='governance_proposals_author_id_fkey'),
        ForeignKeyConstraint(['category_id'], ['governance_categories.id'], ondelete='SET NULL', name='governance_proposals_category_id_fkey'),
        PrimaryKeyConstraint('id', name='governance_proposals_pkey'),
        UniqueConstraint('slug', name='governance_proposals_slug_key'),
        Index('idx_governance_proposals_status', 'status'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    detailed_content: Mapped[Optional[str]] = mapped_column(Text)
    category_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    proposal_level: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=1)
    tags: Mapped[Optional[list[str]]] = mapped_column(TextArray)
    author_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default='draft')
    validated_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    validated_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    voting_starts_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    voting_ends_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    quorum_required: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    approval_threshold: Mapped[decimal.Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=decimal.Decimal('50'))
    total_votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_gpower_for: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_gpower_against: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_gpower_abstain: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    implemented_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, onupdate=now, server_default=func.now())

    author: Mapped['User'] = relationship('User')
    category: Mapped[Optional['GovernanceCategories']] = relationship('GovernanceCategories')


class GovernanceVotes(Base):
    __tablename__ = 'governance_votes'
    __table_args__ = (
        ForeignKeyConstraint(['proposal_id'], ['governance_proposals.id'], ondelete='CASCADE', name='governance_votes_proposal_id_fkey'),
        ForeignKeyConstraint(['voter_id'], ['users.id'], ondelete='CASCADE', name='governance_votes_voter_id_fkey'),
        PrimaryKeyConstraint('id', name='governance_votes_pkey'),
        UniqueConstraint('proposal_id', 'voter_id', name='governance_votes_proposal_id_voter_id_key'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    proposal_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    voter_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    vote: Mapped[str] = mapped_column(String, nullable=False)
    gpower_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comment: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())

    voter: Mapped['User'] = relationship('User')


class GovernanceAdminActions(Base):
    __tablename__ = 'governance_admin_actions'
    __table_args__ = (
        ForeignKeyConstraint(['proposal_id'], ['governance_proposals.id'], ondelete='CASCADE', name='governance_admin_actions_proposal_id_fkey'),
        ForeignKeyConstraint(['admin_id'], ['users.id'], ondelete='SET NULL', name='governance_admin_actions_admin_id_fkey'),
        PrimaryKeyConstraint('id', name='governance_admin_actions_pkey'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    proposal_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    admin_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    action: Mapped[str] = mapped_column(String, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text)
    previous_status: Mapped[Optional[str]] = mapped_column(String)
    new_status: Mapped[Optional[str]] = mapped_column(String)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())

    admin: Mapped[Optional['User']] = relationship('User')


class MentorApplications(Base):
    __tablename__ = 'mentor_applications'
    __table_args__ = (
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='mentor_applications_user_id_fkey'),
        PrimaryKeyConstraint('id', name='mentor_applications_pkey'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    motivation: Mapped[str] = mapped_column(Text, nullable=False)
    experience: Mapped[Optional[str]] = mapped_column(Text)
    availability: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String, nullable=False, default='pending')
    votes_for: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    votes_against: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())
    resolved_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)


class ReferralLinks(Base):
    __tablename__ = 'referral_links'
    __table_args__ = (
        ForeignKeyConstraint(['instructor_id'], ['users.id'], ondelete='CASCADE', name='referral_links_instructor_id_fkey'),
        ForeignKeyConstraint(['course_id'], ['courses.id'], ondelete='SET NULL', name='referral_links_course_id_fkey'),
        PrimaryKeyConstraint('id', name='referral_links_pkey'),
        UniqueConstraint('code', name='referral_links_code_key'),
        UniqueConstraint('instructor_id', 'custom_slug', name='referral_links_instructor_id_custom_slug_key'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    instructor_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    course_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    code: Mapped[str] = mapped_column(Text, nullable=False)
    custom_slug: Mapped[Optional[str]] = mapped_column(Text)
    utm_source: Mapped[Optional[str]] = mapped_column(Text)
    utm_medium: Mapped[Optional[str]] = mapped_column(Text)
    utm_campaign: Mapped[Optional[str]] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    total_clicks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_conversions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())

    course: Mapped[Optional['Courses']] = relationship('Courses')


class Conversations(Base):
    __tablename__ = 'conversations'
    __table_args__ = (
        ForeignKeyConstraint(['participant_1'], ['users.id'], ondelete='CASCADE', name='conversations_participant_1_fkey'),
        ForeignKeyConstraint(['participant_2'], ['users.id'], ondelete='CASCADE', name='conversations_participant_2_fkey'),
        PrimaryKeyConstraint('id', name='conversations_pkey'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    participant_1: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    participant_2: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())
    last_message_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)


class Messages(Base):
    __tablename__ = 'messages'
    __table_args__ = (
        ForeignKeyConstraint(['conversation_id'], ['conversations.id'], ondelete='CASCADE', name='messages_conversation_id_fkey'),
        ForeignKeyConstraint(['sender_id'], ['users.id'], ondelete='CASCADE', name='messages_sender_id_fkey'),
        PrimaryKeyConstraint('id', name='messages_pkey'),
        Index('idx_messages_conversation_created', 'conversation_id', 'created_at'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    conversation_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    sender_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    read_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())


class MessageFlags(Base):
    __tablename__ = 'message_flags'
    __table_args__ = (
        ForeignKeyConstraint(['message_id'], ['messages.id'], ondelete='CASCADE', name='message_flags_message_id_fkey'),
        PrimaryKeyConstraint('id', name='message_flags_pkey'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    message_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    flag_type: Mapped[str] = mapped_column(String, nullable=False)
    severity: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    evidence_hash: Mapped[str] = mapped_column(Text, nullable=False)
    evidence_meta: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())


class MessageReports(Base):
    __tablename__ = 'message_reports'
    __table_args__ = (
        ForeignKeyConstraint(['conversation_id'], ['conversations.id'], ondelete='CASCADE', name='message_reports_conversation_id_fkey'),
        ForeignKeyConstraint(['reported_user_id'], ['users.id'], ondelete='CASCADE', name='message_reports_reported_user_id_fkey'),
        PrimaryKeyConstraint('id', name='message_reports_pkey'),
        UniqueConstraint('reporter_user_id', 'message_id', name='message_reports_reporter_user_id_message_id_key'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    conversation_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    message_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    reporter_user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    reported_user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    reason: Mapped[str] = mapped_column(String, nullable=False)
    details: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String, nullable=False, default='pending')
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())

    reported_user: Mapped['User'] = relationship('User')


class Notifications(Base):
    __tablename__ = 'notifications'
    __table_args__ = (
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='notifications_user_id_fkey'),
        PrimaryKeyConstraint('id', name='notifications_pkey'),
        Index('idx_notifications_user_created', 'user_id', 'created_at'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[Optional[str]] = mapped_column(Text)
    link: Mapped[Optional[str]] = mapped_column(Text)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())


class BetaFeedback(Base):
    __tablename__ = 'beta_feedback'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='beta_feedback_pkey'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    user_email: Mapped[str] = mapped_column(Text, nullable=False)
    page_url: Mapped[Optional[str]] = mapped_column(Text)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default='pending')
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=now, server_default=func.now())
