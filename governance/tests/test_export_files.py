import re
from datetime import datetime

import pytest

from governance.exceptions import ExportFileNotFound, ExportFileTimeout
from governance.export_files import (
    claim_export_file,
    export_file_name,
    find_export_file,
    wait_for_export_file,
)
from governance.tests.fakes import FakeClock


def test_find_export_file_matches_id_and_extension(tmp_path):
    (tmp_path / "report-abc123.txt").write_text("x")
    (tmp_path / "report-zzz999.csv").write_text("x")
    (tmp_path / "b-abc123.csv").write_text("x")
    (tmp_path / "a-abc123.CSV").write_text("x")

    assert find_export_file(str(tmp_path), "abc123").name == "a-abc123.CSV"
    assert find_export_file(str(tmp_path), "nothing") is None


def test_wait_returns_file_once_size_is_stable(tmp_path):
    (tmp_path / "report-abc123-raw.csv").write_text("SiteUrl\n")
    clock = FakeClock()

    found = wait_for_export_file(str(tmp_path), "abc123", 10, sleep=clock.sleep, clock=clock.time)

    assert found.name == "report-abc123-raw.csv"
    assert clock.sleeps == [0.5]


def test_wait_raises_not_found_at_deadline(tmp_path):
    clock = FakeClock()

    with pytest.raises(ExportFileNotFound):
        wait_for_export_file(str(tmp_path), "abc123", 10, sleep=clock.sleep, clock=clock.time)

    assert clock.now == pytest.approx(10)
    assert clock.sleeps[:4] == [0.5, 1.0, 2.0, 4.0]
    assert max(clock.sleeps) <= 5.0


def test_wait_picks_up_file_that_appears_late(tmp_path):
    clock = FakeClock()

    def sleep(seconds):
        clock.sleep(seconds)
        if clock.now >= 3:
            (tmp_path / "export-late1.csv").write_text("SiteUrl\n")

    found = wait_for_export_file(str(tmp_path), "late1", 30, sleep=sleep, clock=clock.time)
    assert found.name == "export-late1.csv"


def test_wait_raises_timeout_while_file_keeps_growing(tmp_path):
    growing = tmp_path / "report-grow1.csv"
    growing.write_text("a")
    clock = FakeClock()

    def sleep(seconds):
        clock.sleep(seconds)
        with open(growing, "a") as fh:
            fh.write("more rows\n")

    with pytest.raises(ExportFileTimeout):
        wait_for_export_file(str(tmp_path), "grow1", 5, sleep=sleep, clock=clock.time)


def test_export_file_name():
    when = datetime(2026, 10, 19, 8, 30, 5)
    assert export_file_name("SharingLinks_Anyone", "abc123", when) == "SharingLinks_Anyone_abc123_20261019083005.csv"


def test_claim_moves_file_into_destination(tmp_path):
    source = tmp_path / "report-abc123-raw.csv"
    source.write_text("SiteUrl\n")
    dest = tmp_path / "logs"

    target = claim_export_file(source, "SharingLinks_Anyone", "abc123", str(dest))

    assert not source.exists()
    assert target.parent == dest
    assert re.fullmatch(r"SharingLinks_Anyone_abc123_\d{14}\.csv", target.name)
    assert target.read_text() == "SiteUrl\n"


def test_claim_adds_suffix_when_name_is_taken(tmp_path):
    when = datetime(2026, 10, 19, 8, 30, 5)
    dest = tmp_path / "logs"
    dest.mkdir()
    taken = dest / export_file_name("PermissionedUsers", "r1", when)
    taken.write_text("earlier export")
    source = tmp_path / "r1.csv"
    source.write_text("new export")

    target = claim_export_file(source, "PermissionedUsers", "r1", str(dest), when=when)

    assert target != taken
    assert re.fullmatch(r"PermissionedUsers_r1_20261019083005_\d{4}\.csv", target.name)
    assert taken.read_text() == "earlier export"
    assert target.read_text() == "new export"
