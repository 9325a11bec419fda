"""In-memory course host.

Keeps categories, courses, sections and pages in dictionaries. Used for
dry runs and tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from coursegen.core.course_builder import CourseHandle


@dataclass
class Section:
    name: str = ""
    summary: str = ""
    pages: list[int] = field(default_factory=list)


@dataclass
class Page:
    page_id: int
    section: int
    title: str
    content: str


@dataclass
class StoredCourse:
    handle: CourseHandle
    sections: list[Section] = field(default_factory=list)


class MemoryCourseHost:
    """Course host holding everything in process memory."""

    def __init__(self, categories: list[int] | None = None, shortnames: list[str] | None = None):
        self.categories = list(categories or [1])
        self.courses: dict[int, StoredCourse] = {}
        self.pages: dict[int, Page] = {}
        self._taken_shortnames = set(shortnames or [])
        self._next_course_id = 1
        self._next_page_id = 1

    def category_exists(self, category_id: int) -> bool:
        return category_id in self.categories

    def default_category_id(self) -> int:
        return self.categories[0]

    def course_exists(self, shortname: str) -> bool:
        return shortname in self._taken_shortnames

    def create_course(
        self, title: str, shortname: str, category_id: int, section_count: int
    ) -> CourseHandle:
        if shortname in self._taken_shortnames:
            raise ValueError(f"Shortname already taken: {shortname}")

        handle = CourseHandle(
            course_id=self._next_course_id,
            shortname=shortname,
            title=title,
            category_id=category_id,
        )
        self._next_course_id += 1
        self._taken_shortnames.add(shortname)
        # Section 0 is the default section
        self.courses[handle.course_id] = StoredCourse(
            handle=handle,
            sections=[Section() for _ in range(section_count + 1)],
        )
        return handle

    def _section(self, course: CourseHandle, index: int) -> Section:
        stored = self.courses.get(course.course_id)
        if stored is None:
            raise KeyError(f"Unknown course: {course.course_id}")
        if index < 0 or index >= len(stored.sections):
            raise IndexError(f"Section {index} does not exist in course {course.shortname}")
        return stored.sections[index]

    def rename_section(self, course: CourseHandle, index: int, title: str, summary: str) -> None:
        section = self._section(course, index)
        section.name = title
        section.summary = summary

    def create_page_activity(
        self, course: CourseHandle, section_index: int, title: str, html_body: str
    ) -> int:
        section = self._section(course, section_index)
        page = Page(
            page_id=self._next_page_id,
            section=section_index,
            title=title,
            content=html_body,
        )
        self._next_page_id += 1
        self.pages[page.page_id] = page
        section.pages.append(page.page_id)
        return page.page_id

    def course_sections(self, course_id: int) -> list[Section]:
        return self.courses[course_id].sections
