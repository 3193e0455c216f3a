from oneonone.models.user import User, UserRole
from oneonone.models.meeting import Meeting, MeetingStatus
from oneonone.models.recurring_schedule import RecurringSchedule, RecurringFrequency
from oneonone.models.notification import Notification, NotificationType
from oneonone.models.todo import TodoItem, TodoPriority, TodoStatus
from oneonone.models.recording import MeetingRecording, RecordingStatus

__all__ = [
    "User",
    "UserRole",
    "Meeting",
    "MeetingStatus",
    "RecurringSchedule",
    "RecurringFrequency",
    "Notification",
    "NotificationType",
    "TodoItem",
    "TodoPriority",
    "TodoStatus",
    "MeetingRecording",
    "RecordingStatus",
]
