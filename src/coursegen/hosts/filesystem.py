"""Filesystem course host.

Writes each course as a folder:

    <root>/<shortname>/
        course.json              course metadata, sections and page list
        sections/00/             default section (untouched)
        sections/01/page-001.html
        ...

A shortname is taken when its folder exists.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog

from coursegen.core.course_builder import CourseHandle

logger = structlog.get_logger(__name__)

COURSE_FILE = "course.json"


class FileSystemCourseHost:
    """Course host that materializes courses as files under a root directory."""

    def __init__(self, root_dir: Path, categories: list[int] | None = None):
        self.root_dir = Path(root_dir)
        self.categories = list(categories or [1])

    def category_exists(self, category_id: int) -> bool:
        return category_id in self.categories

    def default_category_id(self) -> int:
        return self.categories[0]

    def course_exists(self, shortname: str) -> bool:
        return (self.root_dir / shortname).exists()

    def course_path(self, shortname: str) -> Path:
        return self.root_dir / shortname

    def _next_course_id(self) -> int:
        highest = 0
        if self.root_dir.exists():
            for course_file in self.root_dir.glob(f"*/{COURSE_FILE}"):
                try:
                    data = json.loads(course_file.read_text(encoding="utf-8"))
                except (OSError, json.JSONDecodeError):
                    continue
                highest = max(highest, int(data.get("course_id", 0)))
        return highest + 1

    def _read(self, course: CourseHandle) -> dict[str, Any]:
        path = self.course_path(course.shortname) / COURSE_FILE
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _write(self, course: CourseHandle, data: dict[str, Any]) -> None:
        path = self.course_path(course.shortname) / COURSE_FILE
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    def create_course(
        self, title: str, shortname: str, category_id: int, section_count: int
    ) -> CourseHandle:
        course_path = self.course_path(shortname)
        # exist_ok=False: a taken shortname is a structural failure
        course_path.mkdir(parents=True, exist_ok=False)

        handle = CourseHandle(
            course_id=self._next_course_id(),
            shortname=shortname,
            title=title,
            category_id=category_id,
        )

        sections = []
        for index in range(section_count + 1):
            (course_path / "sections" / f"{index:02d}").mkdir(parents=True, exist_ok=True)
            sections.append({"index": index, "name": "", "summary": "", "pages": []})

        self._write(
            handle,
            {
                "course_id": handle.course_id,
                "title": title,
                "shortname": shortname,
                "category_id": category_id,
                "format": "topics",
                "created_at": datetime.now(timezone.utc).isoformat(),
                "sections": sections,
            },
        )

        logger.debug("fs_course_created", path=str(course_path), sections=section_count)
        return handle

    def _section(self, data: dict[str, Any], index: int) -> dict[str, Any]:
        sections = data.get("sections", [])
        if index < 0 or index >= len(sections):
            raise IndexError(f"Section {index} does not exist in course {data.get('shortname')}")
        return sections[index]

    def rename_section(self, course: CourseHandle, index: int, title: str, summary: str) -> None:
        data = self._read(course)
        section = self._section(data, index)
        section["name"] = title
        section["summary"] = summary
        self._write(course, data)

    def create_page_activity(
        self, course: CourseHandle, section_index: int, title: str, html_body: str
    ) -> int:
        data = self._read(course)
        section = self._section(data, section_index)

        page_id = sum(len(s["pages"]) for s in data["sections"]) + 1
        filename = f"page-{page_id:03d}.html"
        page_path = self.course_path(course.shortname) / "sections" / f"{section_index:02d}" / filename
        page_path.write_text(html_body, encoding="utf-8")

        section["pages"].append(
            {
                "page_id": page_id,
                "title": title,
                "file": f"sections/{section_index:02d}/{filename}",
            }
        )
        self._write(course, data)
        return page_id

    def load_course(self, shortname: str) -> dict[str, Any]:
        """Read back a course's metadata."""
        path = self.course_path(shortname) / COURSE_FILE
        if not path.exists():
            raise FileNotFoundError(f"Course not found: {shortname}")
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
