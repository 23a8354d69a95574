from shrinkmovies.pipeline.naming import candidate_name, first_free_path


def test_candidate_name_counter_scheme():
    assert candidate_name("20200101_000000", 0) == "20200101_000000.mp4"
    assert candidate_name("20200101_000000", 1) == "20200101_000000_0001.mp4"
    assert candidate_name("20200101_000000", 12) == "20200101_000000_0012.mp4"


def test_first_free_path_skips_taken_names(tmp_path):
    (tmp_path / "20200101_000000.mp4").write_bytes(b"x")
    taken = {tmp_path / "20200101_000000_0001.mp4"}

    path = first_free_path(tmp_path, "20200101_000000", lambda p: p in taken or p.exists())

    assert path == tmp_path / "20200101_000000_0002.mp4"


def test_first_free_path_returns_plain_name_when_free(tmp_path):
    assert first_free_path(tmp_path, "stem", lambda p: False) == tmp_path / "stem.mp4"
