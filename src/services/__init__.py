"""
Service layer for the Co-Parent Scheduler.

Provides business logic and data access patterns for:
- Availability (blocked periods and the event conflict check)
- Weekly proposals (generation, creation, approval, commit)
- The schedule event store
- Scheduled trigger jobs
- Notifications and family activity history
"""

from src.services.exceptions import (
    SchedulerError,
    AuthenticationError,
    AuthorizationError,
    PlanLimitError,
    NotFoundError,
    SchedulingValidationError,
    DateValidationError,
    ScheduleConflictError,
)

from src.services.availability import (
    Blocker,
    is_date_in_block,
    get_blocker_for_date,
    get_blocked_periods,
    create_blocked_period,
    delete_blocked_period,
    ensure_date_available,
)

from src.services.families import (
    ParentSlots,
    get_family_for_member,
    resolve_parent_roles,
)

from src.services.proposals import (
    ProposalDay,
    ApprovalResult,
    generate_proposal,
    generate_proposal_for_family,
    find_pending_proposal,
    get_current_proposal,
    create_week_proposal,
    approve_proposal,
)

from src.services.schedule import (
    list_events,
    create_event,
    update_event,
    delete_event,
    replace_events_for_date,
)

from src.services.triggers import (
    TriggerSummary,
    ReminderSummary,
    run_weekly_proposals,
    run_evening_reminder,
)

from src.services.notifications import (
    NotificationMessage,
    Notifier,
    BackgroundNotifier,
    WebhookNotifier,
    safe_notify,
)

__all__ = [
    # Errors
    "SchedulerError",
    "AuthenticationError",
    "AuthorizationError",
    "PlanLimitError",
    "NotFoundError",
    "SchedulingValidationError",
    "DateValidationError",
    "ScheduleConflictError",
    # Availability
    "Blocker",
    "is_date_in_block",
    "get_blocker_for_date",
    "get_blocked_periods",
    "create_blocked_period",
    "delete_blocked_period",
    "ensure_date_available",
    # Families
    "ParentSlots",
    "get_family_for_member",
    "resolve_parent_roles",
    # Proposals
    "ProposalDay",
    "ApprovalResult",
    "generate_proposal",
    "generate_proposal_for_family",
    "find_pending_proposal",
    "get_current_proposal",
    "create_week_proposal",
    "approve_proposal",
    # Schedule
    "list_events",
    "create_event",
    "update_event",
    "delete_event",
    "replace_events_for_date",
    # Triggers
    "TriggerSummary",
    "ReminderSummary",
    "run_weekly_proposals",
    "run_evening_reminder",
    # Notifications
    "NotificationMessage",
    "Notifier",
    "BackgroundNotifier",
    "WebhookNotifier",
    "safe_notify",
]
