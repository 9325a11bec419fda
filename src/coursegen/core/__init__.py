"""Core course generation logic.

Modules:
- text_extractor: document-to-text via the AI API
- outline: outline model, editing operations, review YAML
- markdown_parser: markdown outline parsing
- outline_generator: outline generation (JSON first, markdown fallback)
- lesson_generator: per-lesson HTML with placeholder fallback
- course_builder: shortname derivation and course materialization
- draft_store: in-flight outlines between generation and build
- usage_ledger: best-effort usage recording
"""

__all__ = [
    "text_extractor",
    "outline",
    "markdown_parser",
    "outline_generator",
    "lesson_generator",
    "course_builder",
    "draft_store",
    "usage_ledger",
]
