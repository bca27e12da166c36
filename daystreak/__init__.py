"""DayStreak core library: daily checklist, recurring tasks and streaks.

Public API re-exports for convenient imports:
    from daystreak import ProgressStore, FileDocumentStore, project, ...
"""

# Workspace & configuration
from daystreak.workspace import (
    workspace_root,
    settings_path,
    documents_path,
    load_settings,
    get_user_timezone,
    configure_logging,
    init_workspace,
)

# File I/O
from daystreak.fileio import (
    read_json,
    read_yaml,
    write_json_atomic,
    write_yaml_atomic,
)

# Dates
from daystreak.clock import (
    parse_date_key,
    today_key,
    now_iso,
    day_of_week,
    shift_day,
    is_consecutive_day,
    week_days,
    date_prefix_matches,
)

# Built-ins & migration
from daystreak.checklist import (
    DEFAULT_ITEMS,
    DEFAULT_ITEM_IDS,
    fresh_day,
    validate_custom_task,
    migrate_store,
)

# Engines
from daystreak.injector import (
    applies_on,
    project,
    filter_hidden,
    effective_day,
)
from daystreak.streak import (
    core_all_done,
    update_streak,
    apply_streak,
)
from daystreak.aggregate import (
    get_date_progress,
    has_tasks_for_date,
    week_summary,
    group_by_time_of_day,
)

# Documents & bridge
from daystreak.documents import (
    DocumentStore,
    MemoryDocumentStore,
    FileDocumentStore,
    Subscription,
    sanitize,
    user_path,
)
from daystreak.bridge import (
    AutoCompletionBridge,
    DeckStudySignal,
    LastResultSignal,
    apply_signals,
)

# Store
from daystreak.store import ProgressStore, WriteFailure, import_legacy_store

# Models
from daystreak.models import (
    TIMES_OF_DAY,
    ChecklistItem,
    SubCheckItem,
    CustomTask,
    DailyProgress,
    GlobalProgressState,
    DateProgress,
    WeekSummary,
)
