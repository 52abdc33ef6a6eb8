from __future__ import annotations

from dataclasses import dataclass

from jobtracker.types import GenerationMode, VersionKind


@dataclass(slots=True)
class ModePolicy:
    mode: GenerationMode

    def requires_mapping(self) -> bool:
        if self.mode == "grounded":
            return True
        if self.mode == "preview":
            return False
        raise ValueError(f"unsupported generation mode '{self.mode}'")

    def uses_evidence(self) -> bool:
        return self.requires_mapping()

    def version_kind(self) -> VersionKind:
        if self.mode == "preview":
            return "preview"
        if self.mode == "grounded":
            return "draft"
        raise ValueError(f"unsupported generation mode '{self.mode}'")
