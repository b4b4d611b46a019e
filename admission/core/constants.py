"""Static defaults shared by configuration and adapters."""

from __future__ import annotations

RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
UNAUTHENTICATED = "UNAUTHENTICATED"
FORBIDDEN = "FORBIDDEN"
QUERY_TOO_COMPLEX = "QUERY_TOO_COMPLEX"
QUERY_TOO_DEEP = "QUERY_TOO_DEEP"

# (limit, window_seconds) per "METHOD /path/template"
DEFAULT_RATE_LIMITS: dict[str, tuple[int, int]] = {
    # Users
    "POST /api/users/register": (5, 300),
    "POST /api/users/login": (10, 300),
    "PUT /api/users/change-password": (3, 300),
    "PUT /api/users/:id/role": (20, 300),
    "DELETE /api/users/:id": (5, 300),
    "GET /api/users": (100, 60),
    "GET /api/users/:id": (200, 60),
    "GET /api/users/me": (200, 60),
    # Projects
    "POST /api/projects": (10, 300),
    "PUT /api/projects/:id": (20, 300),
    "DELETE /api/projects/:id": (5, 300),
    "POST /api/projects/:id/members": (20, 300),
    "DELETE /api/projects/:id/members/:userId": (20, 300),
    "GET /api/projects": (150, 60),
    "GET /api/projects/my": (150, 60),
    "GET /api/projects/:id": (200, 60),
    "GET /api/projects/:id/members": (200, 60),
    "GET /api/projects/:projectId/tasks": (200, 60),
    # Tasks
    "POST /api/tasks": (20, 60),
    "PUT /api/tasks/:id": (30, 60),
    "DELETE /api/tasks/:id": (10, 60),
    "PUT /api/tasks/:id/assign": (20, 60),
    "PUT /api/tasks/:id/status": (20, 60),
    "GET /api/tasks/:id": (300, 60),
    "GET /api/tasks/:taskId/comments": (200, 60),
    "GET /api/tasks/:taskId/attachments": (200, 60),
    # Notifications
    "POST /api/notifications": (50, 60),
    "PUT /api/notifications/:id": (30, 60),
    "DELETE /api/notifications/:id": (20, 60),
    "PUT /api/notifications/mark-all-read": (5, 60),
    "GET /api/notifications/my": (100, 60),
    "GET /api/notifications/:id": (200, 60),
    "GET /api/notifications/unread-count": (100, 60),
    # Comments
    "POST /api/comments": (30, 60),
    "PUT /api/comments/:id": (20, 60),
    "DELETE /api/comments/:id": (10, 60),
    "GET /api/comments/:id": (200, 60),
    # Attachments
    "POST /api/attachments": (10, 60),
    "PUT /api/attachments/:id": (20, 60),
    "DELETE /api/attachments/:id": (10, 60),
    "GET /api/attachments/:id": (100, 60),
    # Statuses
    "POST /api/statuses": (5, 300),
    "PUT /api/statuses/:id": (10, 300),
    "DELETE /api/statuses/:id": (5, 300),
    "GET /api/statuses": (200, 60),
    "GET /api/statuses/:id": (300, 60),
    "GET /api/statuses/:statusId/tasks": (200, 60),
}

# GraphQL query cost weights
COMPLEXITY_SCALAR = 1
COMPLEXITY_OBJECT = 2
COMPLEXITY_LIST = 5
# Added per nesting level below the root selection
COMPLEXITY_NESTED = 3
DEFAULT_MAX_COMPLEXITY = 250
DEFAULT_MAX_DEPTH = 5

# Non-scalar fields per parent type; anything missing costs COMPLEXITY_SCALAR
FIELD_COMPLEXITY: dict[str, dict[str, int]] = {
    "User": {
        "notifications": COMPLEXITY_LIST,
        "project_members": COMPLEXITY_LIST,
        "projects": COMPLEXITY_LIST,
        "task_comments": COMPLEXITY_LIST,
        "tasks": COMPLEXITY_LIST,
    },
    "Project": {
        "project_members": COMPLEXITY_LIST,
        "users": COMPLEXITY_OBJECT,
        "tasks": COMPLEXITY_LIST,
    },
    "Task": {
        "task_attachments": COMPLEXITY_LIST,
        "task_comments": COMPLEXITY_LIST,
        "users": COMPLEXITY_OBJECT,
        "projects": COMPLEXITY_OBJECT,
        "task_statuses": COMPLEXITY_OBJECT,
    },
    "TaskStatus": {"tasks": COMPLEXITY_LIST},
    "TaskComment": {"tasks": COMPLEXITY_OBJECT, "users": COMPLEXITY_OBJECT},
    "TaskAttachment": {"tasks": COMPLEXITY_OBJECT},
    "Notification": {"users": COMPLEXITY_OBJECT},
    "ProjectMember": {"projects": COMPLEXITY_OBJECT, "users": COMPLEXITY_OBJECT},
}

# Field name -> type of the object it selects
FIELD_TYPE_MAP: dict[str, str] = {
    "user": "User",
    "users": "User",
    "user_id": "User",
    "project": "Project",
    "projects": "Project",
    "project_id": "Project",
    "task": "Task",
    "tasks": "Task",
    "task_id": "Task",
    "taskStatus": "TaskStatus",
    "taskStatuses": "TaskStatus",
    "status_id": "TaskStatus",
    "task_statuses": "TaskStatus",
    "taskComment": "TaskComment",
    "taskComments": "TaskComment",
    "comment_id": "TaskComment",
    "task_comments": "TaskComment",
    "taskAttachment": "TaskAttachment",
    "taskAttachments": "TaskAttachment",
    "attachment_id": "TaskAttachment",
    "task_attachments": "TaskAttachment",
    "notification": "Notification",
    "notifications": "Notification",
    "notification_id": "Notification",
    "projectMember": "ProjectMember",
    "projectMembers": "ProjectMember",
    "project_members": "ProjectMember",
}
