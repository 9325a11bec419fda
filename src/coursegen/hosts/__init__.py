"""Host course-structure implementations."""

from coursegen.hosts.filesystem import FileSystemCourseHost
from coursegen.hosts.memory import MemoryCourseHost

__all__ = ["FileSystemCourseHost", "MemoryCourseHost"]
