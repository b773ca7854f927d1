"""Open-editor tab strip."""

from dataclasses import dataclass
from typing import Iterable, List, Optional


@dataclass(frozen=True)
class Tab:
    id: str
    name: str


class TabStrip:
    def __init__(self):
        self.tabs: List[Tab] = []
        self.active_id: Optional[str] = None

    def open(self, tab_id: str, name: str) -> Tab:
        existing = self.get(tab_id)
        if existing is None:
            existing = Tab(tab_id, name)
            self.tabs.append(existing)
        self.active_id = tab_id
        return existing

    def get(self, tab_id: Optional[str]) -> Optional[Tab]:
        return next((t for t in self.tabs if t.id == tab_id), None)

    def activate(self, tab_id: str) -> bool:
        if self.get(tab_id) is None:
            return False
        self.active_id = tab_id
        return True

    def close(self, tab_id: str) -> bool:
        before = len(self.tabs)
        self.tabs = [t for t in self.tabs if t.id != tab_id]
        if len(self.tabs) == before:
            return False
        if self.active_id == tab_id:
            self.active_id = self.tabs[-1].id if self.tabs else None
        return True

    def close_many(self, tab_ids: Iterable[str]):
        for tab_id in list(tab_ids):
            self.close(tab_id)

    def rename(self, tab_id: str, name: str):
        self.tabs = [Tab(t.id, name) if t.id == tab_id else t for t in self.tabs]

    def __len__(self) -> int:
        return len(self.tabs)
