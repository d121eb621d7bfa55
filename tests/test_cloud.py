from gymlog.cloud import FileKeyValueStore, InMemoryKeyValueStore


def test_in_memory_store_roundtrip():
    store = InMemoryKeyValueStore()
    assert store.get_data("k") is None
    store.set_data("k", b"value")
    assert store.get_data("k") == b"value"
    assert store.synchronize() is True


def test_file_store_shared_between_devices(tmp_path):
    path = tmp_path / "cloud" / "kv.json"
    phone = FileKeyValueStore(path)
    tablet = FileKeyValueStore(path)
    phone.set_data("workoutPayload", b"\x00\x01payload")
    assert not path.exists()
    assert phone.synchronize() is True
    assert tablet.get_data("workoutPayload") is None
    tablet.synchronize()
    assert tablet.get_data("workoutPayload") == b"\x00\x01payload"


def test_file_store_ignores_unreadable_namespace(tmp_path, caplog):
    path = tmp_path / "kv.json"
    path.write_text("[1, 2]")
    store = FileKeyValueStore(path)
    assert store.get_data("workoutPayload") is None
    assert "Cloud namespace unreadable" in caplog.text


def test_store_syncs_through_file_namespace(tmp_path, clock):
    from gymlog.store import WorkoutStore

    namespace = tmp_path / "kv.json"
    phone = WorkoutStore(
        data_path=tmp_path / "phone.json",
        cloud=FileKeyValueStore(namespace),
        clock=clock,
        background_saves=False,
    )
    phone.load()
    phone.add_gym_location("Club", "2 Side St", 10.0, 20.0)
    phone.save()

    tablet = WorkoutStore(
        data_path=tmp_path / "tablet.json",
        cloud=FileKeyValueStore(namespace),
        clock=clock,
        background_saves=False,
    )
    tablet.start()
    assert [g.label for g in tablet.gym_locations] == ["Club"]
    assert tablet.workout_types == phone.workout_types
