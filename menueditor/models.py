from __future__ import annotations

from typing import Any, Iterator

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, RootModel

CORE_KEYS = ("label", "link", "path")

# Hand-written menu.yml files use numbers as labels (a year, a version); keep them as numbers.
Scalar = str | bool | int | float


class MenuItem(BaseModel):
    """
    One navigation entry. Children live under ``submenu``, the key menu.yml uses.

    Any other key is free-form metadata and is kept as submitted.
    """

    model_config = ConfigDict(extra="allow")

    label: Scalar | None = None
    link: Scalar | None = None
    path: Scalar | None = None
    submenu: list["MenuItem"] | None = None

    @property
    def children(self) -> list["MenuItem"]:
        return list(self.submenu or [])

    @property
    def metadata(self) -> dict[str, Any]:
        return dict(self.model_extra or {})

    def to_config(self) -> dict[str, Any]:
        # Only keys that were supplied; children last so the YAML reads top-down.
        out: dict[str, Any] = {}
        for key in CORE_KEYS:
            if key in self.model_fields_set:
                out[key] = getattr(self, key)
        out.update(self.metadata)
        if "submenu" in self.model_fields_set and self.submenu is not None:
            out["submenu"] = [child.to_config() for child in self.submenu]
        return out


class MenuDocument(RootModel[dict[str, list[MenuItem]]]):
    """
    All menus, keyed by name (e.g. ``main``, ``footer``). Order is preserved.
    """

    root: dict[str, list[MenuItem]] = Field(default_factory=dict)

    def __iter__(self) -> Iterator[str]:  # type: ignore[override]
        return iter(self.root)

    def __getitem__(self, name: str) -> list[MenuItem]:
        return self.root[name]

    def __len__(self) -> int:
        return len(self.root)

    def to_config(self) -> dict[str, Any]:
        return {name: [item.to_config() for item in items] for name, items in self.root.items()}

    def depth(self) -> int:
        """Deepest submenu level in use; -1 for a document without items."""
        return max((depth for depth, _ in self.walk()), default=-1)

    def walk(self) -> Iterator[tuple[int, MenuItem]]:
        """Yield ``(depth, item)`` for every item, depth-first, in menu order."""
        stack: list[tuple[int, MenuItem]] = []
        for items in self.root.values():
            stack.extend((0, item) for item in reversed(items))
            while stack:
                depth, item = stack.pop()
                yield depth, item
                stack.extend((depth + 1, child) for child in reversed(item.children))


class BackupsConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Older extension configs spell it "enable".
    enabled: bool = Field(default=False, validation_alias=AliasChoices("enabled", "enable"))
    folder: str = "backups/menu"
    keep: int = Field(default=10, ge=0)


class Configuration(BaseModel):
    """
    Menu editor settings, read from the extension config file once per request.

    Mirrors the YAML schema:
      fields: [title, class]
      backups:
        enabled: true
        folder: backups/menu
        keep: 10
    """

    model_config = ConfigDict(populate_by_name=True)

    extra_fields: list[str] = Field(default_factory=list, alias="fields")
    backups: BackupsConfig = Field(default_factory=BackupsConfig)

    @classmethod
    def from_disk_doc(cls, doc: Any) -> "Configuration":
        return cls.model_validate(doc if isinstance(doc, dict) else {})

    def to_disk_doc(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
