import pytz
from enum import Enum

from config.config import Config

# Class batches offered in the "Class Attended" question
CLASS_OPTIONS = [f"B{n}" for n in range(1, 11)] + [f"INT {n}" for n in range(1, 11)]

MENTOR_OPTIONS = ["Edwin", "Ashwin", "Rafath", "Sriram", "Nihal", "Mathson"]

FEEDBACK_OPTIONS = ["Excellent", "Average", "Poor"]

# Weekdays offered for extra offline classes (no Monday)
OFFLINE_DAY_OPTIONS = ["Sunday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

# File types accepted by the upload question
ACCEPTED_FILE_TYPES = ".pdf,image/*,.doc,.docx"

# Durable snapshot keys
class SnapshotKey(str, Enum):
    """Keys under which the wizard snapshot is persisted."""
    CURRENT_STEP = "currentStep"
    CURRENT_QUESTION_INDEX = "currentQuestionIndex"
    ANSWERS = "answers"

# Multi-select answers are stored comma-joined
MULTI_SELECT_SEPARATOR = ","

# Timezone used to decide what "today" means for date answers
LOCAL_TIMEZONE = pytz.timezone(Config.TIMEZONE)
