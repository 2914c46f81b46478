import os
import pytest

from data_api.app.adapters.listeners.file_listener import FileListener
from data_api.app.platform.exceptions import ResourceNotFound


@pytest.fixture
def data_dir(tmp_path):
    for name in ("b.csv", "a.CSV", "data.yaml", "notes.txt"):
        (tmp_path / name).write_text("x", encoding="utf-8")
    return str(tmp_path)


def test_listen_all_csv_sorted(data_dir):
    files = FileListener().listen(data_dir, extension="csv")
    assert files == [os.path.join(data_dir, "a.CSV"), os.path.join(data_dir, "b.csv")]


def test_listen_named_files_in_given_order(data_dir):
    files = FileListener().listen(data_dir, extension="csv", names=["b.csv", "a.CSV"])
    assert files == [os.path.join(data_dir, "b.csv"), os.path.join(data_dir, "a.CSV")]


def test_listen_missing_named_file(data_dir):
    with pytest.raises(ResourceNotFound):
        FileListener().listen(data_dir, extension="csv", names=["missing.csv"])


def test_listen_missing_dir(tmp_path):
    with pytest.raises(ResourceNotFound):
        FileListener().listen(str(tmp_path / "nope"), extension="csv")
