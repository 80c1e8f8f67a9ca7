from dailybag.core.storage import STORAGE_PREFIX, StorageManager


class _Clock:
    def __init__(self, now=1_000_000):
        self.now = now

    def __call__(self):
        return self.now


def _BuildStorage(clock=None, **kwargs):
    return StorageManager({}, clock=clock or _Clock(), **kwargs)


def test_set_then_get_returns_value():
    storage = _BuildStorage()
    assert storage.SetItem("chores", [{"title": "Dishes", "points": 10}]) is True
    assert storage.GetItem("chores") == [{"title": "Dishes", "points": 10}]
    assert f"{STORAGE_PREFIX}chores" in storage.Backend


def test_expired_item_is_removed_on_read():
    clock = _Clock()
    storage = _BuildStorage(clock)
    storage.SetItem("session", {"id": 1}, ttl_ms=1000)

    clock.now += 1001
    assert storage.GetItem("session") is None
    assert f"{STORAGE_PREFIX}session" not in storage.Backend


def test_item_within_ttl_is_returned():
    clock = _Clock()
    storage = _BuildStorage(clock)
    storage.SetItem("session", "abc", ttl_ms=1000)
    clock.now += 1000
    assert storage.GetItem("session") == "abc"


def test_corrupt_entry_returns_none_and_is_removed():
    storage = _BuildStorage()
    storage.Backend[f"{STORAGE_PREFIX}broken"] = "{not json"
    assert storage.GetItem("broken") is None
    assert f"{STORAGE_PREFIX}broken" not in storage.Backend


def test_checksum_mismatch_is_treated_as_corrupt():
    storage = _BuildStorage()
    storage.SetItem("points", 10)
    key = f"{STORAGE_PREFIX}points"
    storage.Backend[key] = storage.Backend[key].replace('"value":10', '"value":99')
    assert storage.GetItem("points") is None
    assert key not in storage.Backend


def test_non_numeric_timestamp_or_ttl_is_treated_as_corrupt():
    storage = _BuildStorage()
    storage.Backend[f"{STORAGE_PREFIX}user"] = '{"value":1,"timestamp":"abc","ttl":10}'
    storage.Backend[f"{STORAGE_PREFIX}session"] = '{"value":1,"timestamp":5,"ttl":"soon"}'

    assert storage.HasItem("user") is False
    assert storage.Cleanup() == 0
    assert storage.GetItem("user") is None
    assert storage.GetItem("session") is None
    assert storage.GetKeys() == []


def test_encrypted_and_compressed_round_trip():
    storage = _BuildStorage()
    value = {"notes": "x" * 500}
    assert storage.SetItem("big", value, encrypt=True, compress=True) is True
    raw = storage.Backend[f"{STORAGE_PREFIX}big"]
    assert "xxxx" not in raw
    assert storage.GetItem("big") == value


def test_encrypted_entry_is_unreadable_with_another_key():
    backend = {}
    StorageManager(backend, secret="first", clock=_Clock()).SetItem("secret", {"a": 1}, encrypt=True)
    other = StorageManager(backend, secret="second", clock=_Clock())
    assert other.GetItem("secret") is None


def test_cleanup_counts_only_expired_entries():
    clock = _Clock()
    storage = _BuildStorage(clock)
    storage.SetItem("short-1", 1, ttl_ms=100)
    storage.SetItem("short-2", 2, ttl_ms=100)
    storage.SetItem("long", 3, ttl_ms=100_000)
    storage.SetItem("forever", 4)

    clock.now += 500
    assert storage.Cleanup() == 2
    assert sorted(storage.GetKeys()) == ["forever", "long"]


def test_cleanup_leaves_corrupt_entries_alone():
    storage = _BuildStorage()
    storage.Backend[f"{STORAGE_PREFIX}broken"] = "nope"
    assert storage.Cleanup() == 0
    assert f"{STORAGE_PREFIX}broken" in storage.Backend


def test_clear_only_touches_prefixed_keys():
    storage = _BuildStorage()
    storage.Backend["other_app"] = "keep"
    storage.SetItem("a", 1)
    storage.SetItem("b", 2)
    storage.Clear()
    assert storage.Backend == {"other_app": "keep"}


def test_has_item_respects_expiry():
    clock = _Clock()
    storage = _BuildStorage(clock)
    storage.SetItem("token", "t", ttl_ms=10)
    assert storage.HasItem("token") is True
    clock.now += 11
    assert storage.HasItem("token") is False
    assert storage.GetKeys() == []


def test_set_rate_limit_blocks_after_limit():
    clock = _Clock()
    storage = _BuildStorage(clock, set_limit=3)
    results = [storage.SetItem(f"k{index}", index) for index in range(4)]
    assert results == [True, True, True, False]

    clock.now += 60_001
    assert storage.SetItem("k4", 4) is True


def test_get_rate_limit_returns_none():
    storage = _BuildStorage(get_limit=2)
    storage.SetItem("value", 1)
    assert storage.GetItem("value") == 1
    assert storage.GetItem("value") == 1
    assert storage.GetItem("value") is None


def test_rate_limit_can_be_disabled():
    storage = _BuildStorage(set_limit=0)
    assert all(storage.SetItem(f"k{index}", index) for index in range(100))


def test_unserializable_value_is_rejected():
    storage = _BuildStorage()
    assert storage.SetItem("bad", {1, 2}) is False
    assert storage.GetKeys() == []


def test_storage_info_reports_usage():
    storage = _BuildStorage(max_bytes=1000)
    storage.SetItem("a", "hello")
    info = storage.GetStorageInfo()
    assert info["Total"] == 1000
    assert info["Used"] > 0
    assert info["Used"] + info["Available"] == 1000


def test_load_wraps_legacy_keys():
    storage = _BuildStorage()
    imported = storage.Load(
        {
            "chores": '[{"title": "Vacuum"}]',
            "userStats": '{"u1": {"earnedPoints": 40}}',
            "garbage": "{oops",
        }
    )
    assert imported == 2
    assert storage.GetItem("chores") == [{"title": "Vacuum"}]
    assert storage.GetItem("userStats") == {"u1": {"earnedPoints": 40}}
