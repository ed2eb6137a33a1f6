"""Style profile persistence."""

import json
import threading
from pathlib import Path
from typing import Dict, Optional

from models.style_profile import StyleProfile


class ProfileStore:
    """Load/save interface for style profiles."""

    def load_profile(self, user_id: str) -> Optional[StyleProfile]:
        raise NotImplementedError

    def save_profile(self, user_id: str, profile: StyleProfile) -> None:
        raise NotImplementedError

    def delete_profile(self, user_id: str) -> bool:
        raise NotImplementedError


class JSONProfileStore(ProfileStore):
    """Simple JSON-backed profile store, one file per user."""

    def __init__(self, base_dir: str | Path = "data/profiles") -> None:
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _profile_path(self, user_id: str) -> Path:
        return self.base_dir / f"{user_id}.json"

    def load_profile(self, user_id: str) -> Optional[StyleProfile]:
        path = self._profile_path(user_id)
        if not path.exists():
            return None
        return StyleProfile.from_dict(json.loads(path.read_text()))

    def save_profile(self, user_id: str, profile: StyleProfile) -> None:
        path = self._profile_path(user_id)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(profile.to_dict(), indent=2))
        tmp_path.replace(path)

    def delete_profile(self, user_id: str) -> bool:
        path = self._profile_path(user_id)
        if not path.exists():
            return False
        path.unlink()
        return True


class InMemoryProfileStore(ProfileStore):
    def __init__(self) -> None:
        self._profiles: Dict[str, dict] = {}
        self._lock = threading.Lock()

    def load_profile(self, user_id: str) -> Optional[StyleProfile]:
        with self._lock:
            payload = self._profiles.get(user_id)
        return StyleProfile.from_dict(payload) if payload else None

    def save_profile(self, user_id: str, profile: StyleProfile) -> None:
        with self._lock:
            self._profiles[user_id] = profile.to_dict()

    def delete_profile(self, user_id: str) -> bool:
        with self._lock:
            return self._profiles.pop(user_id, None) is not None
