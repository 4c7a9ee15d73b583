# import every model so db.create_all() sees the tables
from .user import User  # noqa: F401
from .exam_cache import ExamResultCache, ExamInProgressCache  # noqa: F401
