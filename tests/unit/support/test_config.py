"""Unit tests for configuration classes."""

from __future__ import annotations

from pathlib import Path

import pytest

from storefront.config import FulfillmentConfig, StoreConfig


class TestStoreConfig:
    def test_defaults(self) -> None:
        config = StoreConfig()

        assert config.data_dir == Path("database")
        assert config.indent == 2
        assert config.fsync is True
        assert config.lock_timeout is None

    def test_string_data_dir_is_converted(self) -> None:
        config = StoreConfig(data_dir="/tmp/db")  # type: ignore[arg-type]

        assert config.data_dir == Path("/tmp/db")

    def test_negative_indent_rejected(self) -> None:
        with pytest.raises(ValueError, match="indent"):
            StoreConfig(indent=-1)

    def test_non_positive_lock_timeout_rejected(self) -> None:
        with pytest.raises(ValueError, match="lock_timeout"):
            StoreConfig(lock_timeout=0)

    def test_is_frozen(self) -> None:
        config = StoreConfig()

        with pytest.raises(AttributeError):
            config.indent = 4  # type: ignore[misc]

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("STOREFRONT_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("STOREFRONT_LOCK_TIMEOUT", "2.5")
        monkeypatch.setenv("STOREFRONT_FSYNC", "off")

        config = StoreConfig.from_env()

        assert config.data_dir == tmp_path
        assert config.lock_timeout == 2.5
        assert config.fsync is False

    def test_from_env_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("STOREFRONT_DATA_DIR", "STOREFRONT_LOCK_TIMEOUT", "STOREFRONT_FSYNC"):
            monkeypatch.delenv(name, raising=False)

        assert StoreConfig.from_env() == StoreConfig()

    def test_from_env_custom_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SHOP_FSYNC", "yes")
        monkeypatch.setenv("SHOP_DATA_DIR", "/srv/shop")

        config = StoreConfig.from_env(prefix="SHOP_")

        assert config.data_dir == Path("/srv/shop")
        assert config.fsync is True

    @pytest.mark.parametrize(
        ("name", "value"),
        [("STOREFRONT_LOCK_TIMEOUT", "soon"), ("STOREFRONT_FSYNC", "maybe")],
    )
    def test_from_env_rejects_garbage(
        self, monkeypatch: pytest.MonkeyPatch, name: str, value: str
    ) -> None:
        monkeypatch.setenv(name, value)

        with pytest.raises(ValueError, match=name):
            StoreConfig.from_env()


class TestFulfillmentConfig:
    def test_defaults(self) -> None:
        config = FulfillmentConfig()

        assert config.payment_event_types == ("payment",)
        assert config.notify_on_empty is False
        assert config.allow_retry_after_failure is True

    def test_empty_event_types_rejected(self) -> None:
        with pytest.raises(ValueError, match="payment_event_types"):
            FulfillmentConfig(payment_event_types=())
