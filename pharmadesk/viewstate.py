"""
Per-session UI state: which page is open and how it is filtered.
"""
from dataclasses import asdict, dataclass, fields, replace
from typing import Optional

SESSION_KEY = 'pharmadesk_view_state'

VIEWS = ('dashboard', 'messages', 'knowledge', 'reports', 'users', 'pending', 'archives', 'account')
TASK_VIEWS = ('kanban', 'calendar')
MESSAGE_FOLDERS = ('inbox', 'sent', 'archived', 'trash')


@dataclass(frozen=True)
class ViewState:
    view: str = 'dashboard'
    task_view: str = 'kanban'
    my_tasks_only: bool = False
    selected_member_id: Optional[str] = None
    message_folder: str = 'inbox'
    kb_folder_id: Optional[str] = None

    def __post_init__(self):
        # frozen dataclass, so defaults are restored with object.__setattr__
        if self.view not in VIEWS:
            object.__setattr__(self, 'view', 'dashboard')
        if self.task_view not in TASK_VIEWS:
            object.__setattr__(self, 'task_view', 'kanban')
        if self.message_folder not in MESSAGE_FOLDERS:
            object.__setattr__(self, 'message_folder', 'inbox')
        object.__setattr__(self, 'my_tasks_only', _as_bool(self.my_tasks_only))
        for name in ('selected_member_id', 'kb_folder_id'):
            value = getattr(self, name)
            object.__setattr__(self, name, str(value) if value else None)

    @classmethod
    def from_session(cls, session):
        data = session.get(SESSION_KEY) or {}
        if not isinstance(data, dict):
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def save(self, session):
        session[SESSION_KEY] = asdict(self)

    def update(self, **changes):
        known = {f.name for f in fields(self)}
        return replace(self, **{k: v for k, v in changes.items() if k in known})


def _as_bool(value):
    if isinstance(value, str):
        return value.lower() in ('1', 'true', 'on', 'yes')
    return bool(value)
