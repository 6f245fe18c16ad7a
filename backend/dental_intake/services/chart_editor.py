from __future__ import annotations

from typing import Any

from dental_intake.schemas.treatment import FormState, ToothIssue
from dental_intake.services.tooth_chart import ToothScheme, is_valid_tooth, teeth_for

_SECTIONS = {
    "dentalCheckup": "dental_checkup",
    "dental_checkup": "dental_checkup",
    "diagnosis": "diagnosis",
}


class ChartEditor:
    """Clinical findings plus the per-tooth issue ledger.

    Tooth selection and the issue editor draft are working state only; the
    ledger itself lives in ``form.tooth_issues``.
    """

    def __init__(self, form: FormState, scheme: ToothScheme = ToothScheme.adult) -> None:
        self.form = form
        self.scheme = ToothScheme(scheme)
        self._selected: list[int] = []
        self.is_editor_open = False
        self.is_group_edit = False
        self.issue = ""
        self.comment = ""
        self.error: str | None = None

    def update_field(self, path: str, value: Any) -> None:
        section_key, _, leaf = path.partition(".")
        attr = _SECTIONS.get(section_key)
        if attr is None or not leaf or "." in leaf:
            raise KeyError(path)
        section = getattr(self.form, attr)
        setattr(section, type(section).field_name(leaf), "" if value is None else str(value))

    def set_scheme(self, scheme: ToothScheme | str) -> None:
        self.scheme = ToothScheme(scheme)

    @property
    def visible_teeth(self) -> tuple[int, ...]:
        return teeth_for(self.scheme)

    @property
    def selected_teeth(self) -> tuple[int, ...]:
        return tuple(self._selected)

    @property
    def can_add_issue(self) -> bool:
        return bool(self._selected)

    @property
    def affected_teeth(self) -> list[int]:
        return sorted(self.form.tooth_issues)

    def has_issue(self, tooth: int) -> bool:
        return tooth in self.form.tooth_issues

    def toggle_tooth_selection(self, tooth: int) -> None:
        tooth = int(tooth)
        if not is_valid_tooth(tooth):
            raise ValueError(f"Unknown tooth number: {tooth}")
        if tooth in self._selected:
            self._selected.remove(tooth)
        else:
            self._selected.append(tooth)

    def open_issue_editor(self) -> bool:
        if not self._selected:
            return False
        entries = [self.form.tooth_issues.get(tooth) for tooth in self._selected]
        first = entries[0]
        shared = first is not None and all(
            entry is not None and entry.issue == first.issue and entry.comment == first.comment
            for entry in entries
        )
        if shared:
            self.issue = first.issue
            self.comment = first.comment
        else:
            self.issue = ""
            self.comment = ""
        self.is_group_edit = len(self._selected) > 1
        self.is_editor_open = True
        self.error = None
        return True

    def commit_issue(self, issue: str | None = None, comment: str | None = None) -> bool:
        if not self._selected:
            return False
        issue = (self.issue if issue is None else issue).strip()
        if not issue:
            self.error = "Please select an issue"
            return False
        comment = self.comment if comment is None else comment
        entry = ToothIssue(issue=issue, comment=comment or "")
        updated = dict(self.form.tooth_issues)
        for tooth in self._selected:
            updated[tooth] = entry.model_copy()
        self.form.tooth_issues = updated
        self._reset()
        return True

    def remove_issue(self) -> bool:
        if not self._selected:
            return False
        updated = dict(self.form.tooth_issues)
        for tooth in self._selected:
            updated.pop(tooth, None)
        self.form.tooth_issues = updated
        self._reset()
        return True

    def cancel(self) -> None:
        self._reset()

    def _reset(self) -> None:
        self._selected = []
        self.is_editor_open = False
        self.is_group_edit = False
        self.issue = ""
        self.comment = ""
        self.error = None
