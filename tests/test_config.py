"""Tests for AdapterConfig."""

from __future__ import annotations

from mountfs.config import BASEPATH, HOST, KEY, PASSWORD, AdapterConfig


class Listener:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, config: AdapterConfig) -> None:
        self.calls += 1


class TestAccess:
    def test_initial_values_skip_none(self):
        cfg = AdapterConfig({HOST: "h", BASEPATH: None})
        assert cfg.as_dict() == {HOST: "h"}
        assert BASEPATH not in cfg

    def test_get_default(self):
        assert AdapterConfig().get(HOST, "fallback") == "fallback"

    def test_set_returns_self(self):
        cfg = AdapterConfig()
        assert cfg.set(HOST, "h").set(BASEPATH, "/b") is cfg
        assert cfg.get(BASEPATH) == "/b"

    def test_set_none_unsets(self):
        cfg = AdapterConfig({HOST: "h"})
        cfg.set(HOST, None)
        assert HOST not in cfg

    def test_as_dict_is_a_copy(self):
        cfg = AdapterConfig({HOST: "h"})
        cfg.as_dict()[HOST] = "changed"
        assert cfg.get(HOST) == "h"

    def test_repr_masks_secrets(self):
        cfg = AdapterConfig({HOST: "h", PASSWORD: "pw123", KEY: "k-material"})
        text = repr(cfg)
        assert "pw123" not in text
        assert "k-material" not in text
        assert "'h'" in text


class TestNotification:
    def test_change_notifies(self):
        cfg = AdapterConfig()
        listener = Listener()
        cfg.register(listener)
        cfg.set(HOST, "h")
        assert listener.calls == 1

    def test_equal_value_is_silent(self):
        cfg = AdapterConfig({HOST: "h"})
        listener = Listener()
        cfg.register(listener)
        cfg.set(HOST, "h")
        assert listener.calls == 0

    def test_unset_missing_is_silent(self):
        cfg = AdapterConfig()
        listener = Listener()
        cfg.register(listener)
        cfg.unset(HOST)
        assert listener.calls == 0

    def test_batch_notifies_once(self):
        cfg = AdapterConfig()
        listener = Listener()
        cfg.register(listener)
        with cfg.batch():
            cfg.set(HOST, "h")
            cfg.set(BASEPATH, "/b")
            with cfg.batch():
                cfg.set(PASSWORD, "p")
            assert listener.calls == 0
        assert listener.calls == 1

    def test_empty_batch_is_silent(self):
        cfg = AdapterConfig({HOST: "h"})
        listener = Listener()
        cfg.register(listener)
        with cfg.batch():
            cfg.set(HOST, "h")
        assert listener.calls == 0

    def test_merge_is_one_change(self):
        cfg = AdapterConfig()
        listener = Listener()
        cfg.register(listener)
        cfg.merge({HOST: "h", BASEPATH: "/b"})
        cfg.merge(AdapterConfig({PASSWORD: "p"}))
        assert listener.calls == 2
        assert cfg.as_dict() == {HOST: "h", BASEPATH: "/b", PASSWORD: "p"}

    def test_unregister(self):
        cfg = AdapterConfig()
        listener = Listener()
        cfg.register(listener)
        assert cfg.unregister(listener) is True
        assert cfg.unregister(listener) is False
        cfg.set(HOST, "h")
        assert listener.calls == 0
