"""Application key-value settings."""
from typing import Optional

from aislewise.models import AppSetting
from .base_service import BaseService


class SettingService(BaseService):
    """Service for persisted application settings."""

    def get_setting(self, key: str, default: Optional[str] = None) -> Optional[str]:
        with self._read() as session:
            setting = session.get(AppSetting, key)
            return setting.value if setting is not None else default

    def set_setting(self, key: str, value: str) -> AppSetting:
        """
        Create or replace a setting.

        Args:
            key: Setting key
            value: Setting value

        Returns:
            The stored setting
        """
        key = self._validate_name(key, field="key")
        with self._write() as session:
            setting = session.get(AppSetting, key)
            if setting is None:
                setting = AppSetting(key=key, value=value)
                session.add(setting)
            else:
                setting.value = value
            session.flush()
        self._log_action("set_setting", key=key)
        return setting

    def delete_setting(self, key: str) -> bool:
        """Remove a setting; returns whether it existed."""
        with self._write() as session:
            setting = session.get(AppSetting, key)
            if setting is not None:
                session.delete(setting)
        self._log_action("delete_setting", key=key, existed=setting is not None)
        return setting is not None
