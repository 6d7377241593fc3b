from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List


@dataclass
class LanguageMergeStatus:
    """Outcome of merging the source strings into one language."""
    language: str
    new_items: int = 0
    refreshed_items: int = 0
    orphaned_items: int = 0
    total_items: int = 0
    files_changed: bool = False


@dataclass
class MergeResults:
    """Results of merging the source strings into every language."""
    action_timestamp: datetime = field(default_factory=datetime.now)
    total_strings: int = 0
    language_statuses: Dict[str, LanguageMergeStatus] = field(default_factory=dict)

    def add(self, status: LanguageMergeStatus):
        self.language_statuses[status.language] = status

    @property
    def updated_languages(self) -> List[str]:
        """Languages whose files were rewritten."""
        return [language for language, status in self.language_statuses.items() if status.files_changed]

    @property
    def unchanged_languages(self) -> List[str]:
        return [language for language, status in self.language_statuses.items() if not status.files_changed]

    def format_status_report(self) -> str:
        """Generate a human-readable status report."""
        lines = [
            f"Merge at {self.action_timestamp}",
            f"Source strings: {self.total_strings}",
            f"Languages: {len(self.language_statuses)}",
        ]

        if self.language_statuses:
            lines.append("\nLanguage Status:")
            for language, status in self.language_statuses.items():
                lines.append(f"- {language}:")
                lines.append(f"  • Items: {status.total_items}")
                lines.append(f"  • New: {status.new_items}")
                lines.append(f"  • Refreshed: {status.refreshed_items}")
                lines.append(f"  • Orphaned: {status.orphaned_items}")
                lines.append(f"  • Files: {'updated' if status.files_changed else 'unchanged'}")
        else:
            lines.append("No languages found.")

        return "\n".join(lines)
