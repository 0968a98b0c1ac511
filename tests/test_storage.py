"""
Tests for bucket storage and the snapshot codec.

The Google Sheets store runs against an in-process fake worksheet;
no network access is needed.
"""

import json
import pytest
from datetime import datetime, timezone
from decimal import Decimal

from qisst.models.committee import (
    CommitteeSettings,
    Cycle,
    Frequency,
    Member,
    PaymentRecord,
)
from qisst.services.storage import (
    Bucket,
    GoogleSheetsBucketStore,
    InMemoryStore,
    JsonFileStore,
    StorageError,
    StoreReadCorrupt,
    default_for,
    dump_bucket,
    load_bucket,
)
from qisst.services.storage.google_sheets import BUCKET_COLUMNS, MAX_CELL_CHARS


RECEIVED = datetime(2024, 2, 1, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_data():
    members = [
        Member(id="m1", name="Ayesha", phone="0300-1234567"),
        Member(id="m2", name="Bilal", has_received_pot=True, received_date=RECEIVED),
    ]
    cycles = [
        Cycle(
            id="cycle-000000000002",
            label="Month 2",
            start_date=datetime(2024, 2, 1, tzinfo=timezone.utc),
            winner_id="m2",
            is_completed=True,
        ),
        Cycle(
            id="cycle-000000000001",
            label="Month 1",
            start_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        ),
    ]
    payments = [
        PaymentRecord(member_id="m1", cycle_id="cycle-000000000001", date_paid=RECEIVED),
    ]
    settings = CommitteeSettings(
        committee_name="Office Qisst",
        installment_amount=Decimal("2500.50"),
        currency="USD",
        frequency=Frequency.WEEKLY,
    )
    return {
        Bucket.SETTINGS: settings,
        Bucket.MEMBERS: members,
        Bucket.CYCLES: cycles,
        Bucket.PAYMENTS: payments,
    }


class TestSnapshotCodec:
    """Tests for dumping and loading bucket snapshots."""

    def test_round_trip_all_buckets(self, sample_data):
        """Test that every bucket reads back exactly as written."""
        for bucket, value in sample_data.items():
            assert load_bucket(bucket, dump_bucket(bucket, value)) == value

    def test_dump_uses_camel_case(self, sample_data):
        """Test the stored field names."""
        members = json.loads(dump_bucket(Bucket.MEMBERS, sample_data[Bucket.MEMBERS]))
        assert members[1]["hasReceivedPot"] is True
        assert "receivedDate" in members[1]
        assert "joinDate" in members[0]

        settings = json.loads(dump_bucket(Bucket.SETTINGS, sample_data[Bucket.SETTINGS]))
        assert settings["committeeName"] == "Office Qisst"
        assert settings["frequency"] == "WEEKLY"

    def test_missing_bucket_gives_default(self):
        """Test first-run defaults."""
        assert load_bucket(Bucket.MEMBERS, None) == []
        assert load_bucket(Bucket.PAYMENTS, "  ") == []
        assert load_bucket(Bucket.SETTINGS, None) == CommitteeSettings()
        assert default_for(Bucket.CYCLES) == []

    def test_loads_numeric_installment(self):
        """Test that a plain JSON number is accepted for the installment."""
        raw = '{"committeeName": "X", "installmentAmount": 1000, "currency": "PKR", "frequency": "MONTHLY"}'
        settings = load_bucket(Bucket.SETTINGS, raw)
        assert settings.installment_amount == Decimal("1000")

    def test_invalid_json_is_corrupt(self):
        """Test that unparseable text raises StoreReadCorrupt."""
        with pytest.raises(StoreReadCorrupt) as exc_info:
            load_bucket(Bucket.MEMBERS, "{not json")
        assert exc_info.value.bucket == Bucket.MEMBERS

    def test_schema_mismatch_is_corrupt(self):
        """Test that valid JSON with the wrong shape raises StoreReadCorrupt."""
        with pytest.raises(StoreReadCorrupt):
            load_bucket(Bucket.CYCLES, '[{"id": "c1"}]')
        with pytest.raises(StoreReadCorrupt):
            load_bucket(Bucket.SETTINGS, "[]")

    def test_broken_invariant_is_corrupt(self):
        """Test that a member flagged as winner without a date is rejected."""
        raw = '[{"id": "m1", "name": "A", "hasReceivedPot": true}]'
        with pytest.raises(StoreReadCorrupt):
            load_bucket(Bucket.MEMBERS, raw)


class TestJsonFileStore:
    """Tests for the local JSON file backend."""

    def test_load_missing_returns_none(self, tmp_path):
        """Test that an unwritten bucket loads as None."""
        store = JsonFileStore(tmp_path)
        assert store.load(Bucket.MEMBERS) is None

    def test_load_invalid_utf8_is_corrupt(self, tmp_path):
        """Test that undecodable bytes read as a corrupt bucket."""
        store = JsonFileStore(tmp_path)
        store.path_for(Bucket.MEMBERS).write_bytes(b'[{"name": "\xff\xfe"}]')

        with pytest.raises(StoreReadCorrupt) as exc_info:
            store.load(Bucket.MEMBERS)

        assert exc_info.value.bucket == Bucket.MEMBERS

    def test_save_and_load(self, tmp_path):
        """Test that a snapshot reads back unchanged."""
        store = JsonFileStore(tmp_path / "data")
        store.save(Bucket.MEMBERS, '[{"id": "m1"}]')
        assert store.load(Bucket.MEMBERS) == '[{"id": "m1"}]'
        assert (tmp_path / "data" / "qisst_members.json").exists()

    def test_save_replaces(self, tmp_path):
        """Test that a second save replaces the first."""
        store = JsonFileStore(tmp_path)
        store.save(Bucket.CYCLES, "[1]")
        store.save(Bucket.CYCLES, "[2]")
        assert store.load(Bucket.CYCLES) == "[2]"

    def test_save_leaves_no_temp_files(self, tmp_path):
        """Test that staging files are swapped in, not left behind."""
        store = JsonFileStore(tmp_path)
        store.save_many({Bucket.MEMBERS: "[]", Bucket.CYCLES: "[]"})
        names = sorted(p.name for p in tmp_path.iterdir())
        assert names == ["qisst_cycles.json", "qisst_members.json"]

    def test_key_prefix(self, tmp_path):
        """Test that the prefix separates data sets in one folder."""
        store = JsonFileStore(tmp_path, key_prefix="test_")
        store.save(Bucket.SETTINGS, "{}")
        assert store.path_for(Bucket.SETTINGS).name == "test_settings.json"

    def test_delete(self, tmp_path):
        """Test deleting a bucket file."""
        store = JsonFileStore(tmp_path)
        store.save(Bucket.PAYMENTS, "[]")
        assert store.delete(Bucket.PAYMENTS) is True
        assert store.delete(Bucket.PAYMENTS) is False
        assert store.load(Bucket.PAYMENTS) is None

    def test_unreadable_path_raises(self, tmp_path):
        """Test that a directory in place of a bucket file is a StorageError."""
        store = JsonFileStore(tmp_path)
        store.path_for(Bucket.MEMBERS).mkdir()
        with pytest.raises(StorageError):
            store.load(Bucket.MEMBERS)


class TestInMemoryStore:
    """Tests for the in-memory backend."""

    def test_save_and_load(self):
        """Test basic storage."""
        store = InMemoryStore()
        assert store.load(Bucket.MEMBERS) is None
        store.save(Bucket.MEMBERS, "[]")
        assert store.load(Bucket.MEMBERS) == "[]"
        assert store.keys() == ["qisst_members"]
        assert store.save_count == 1

    def test_initial_data(self):
        """Test seeding the store."""
        store = InMemoryStore({Bucket.CYCLES: "[]"})
        assert store.load(Bucket.CYCLES) == "[]"
        assert store.save_count == 0

    def test_save_many_writes_each(self):
        """Test the default sequential save_many."""
        store = InMemoryStore()
        store.save_many({Bucket.MEMBERS: "[]", Bucket.CYCLES: "[]"})
        assert store.save_count == 2
        assert store.keys() == ["qisst_cycles", "qisst_members"]


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the bucket store."""

    def __init__(self):
        self.rows = [list(BUCKET_COLUMNS)]
        self.input_options = []

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.input_options.append(value_input_option)
        self.rows.append(list(values))

    def update(self, range_name, values, value_input_option=None):
        # Only single-row "B<n>:C<n>" ranges are written
        self.input_options.append(value_input_option)
        row = int(range_name.split(":")[0][1:])
        self.rows[row - 1][1:1 + len(values[0])] = values[0]

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:
    def __init__(self):
        self.sheet = FakeWorksheet()

    def get_buckets_sheet(self):
        return self.sheet


class TestGoogleSheetsBucketStore:
    """Tests for the Google Sheets backend against a fake worksheet."""

    def test_load_missing_returns_none(self):
        """Test that an absent row loads as None."""
        store = GoogleSheetsBucketStore(client=FakeSheetsClient())
        assert store.load(Bucket.SETTINGS) is None

    def test_save_appends_then_updates(self):
        """Test that the first save appends and later saves update in place."""
        client = FakeSheetsClient()
        store = GoogleSheetsBucketStore(client=client)

        store.save(Bucket.MEMBERS, "[1]")
        assert len(client.sheet.rows) == 2
        store.save(Bucket.MEMBERS, "[2]")
        assert len(client.sheet.rows) == 2

        assert store.load(Bucket.MEMBERS) == "[2]"
        assert client.sheet.rows[1][0] == "qisst_members"
        assert client.sheet.rows[1][2]

    def test_snapshot_written_raw(self):
        """Test that stored JSON is never parsed by Sheets, on append or update."""
        client = FakeSheetsClient()
        store = GoogleSheetsBucketStore(client=client)

        store.save(Bucket.SETTINGS, '{"installmentAmount": "=1+1"}')
        store.save(Bucket.SETTINGS, '{"installmentAmount": "1000"}')

        assert client.sheet.input_options == ["RAW", "RAW"]
        assert store.load(Bucket.SETTINGS) == '{"installmentAmount": "1000"}'

    def test_buckets_are_separate_rows(self):
        """Test that each bucket gets its own row."""
        client = FakeSheetsClient()
        store = GoogleSheetsBucketStore(client=client)
        store.save_many({Bucket.MEMBERS: "[]", Bucket.CYCLES: "[3]"})
        assert store.load(Bucket.CYCLES) == "[3]"
        assert store.load(Bucket.MEMBERS) == "[]"
        assert len(client.sheet.rows) == 3

    def test_oversized_snapshot_rejected(self):
        """Test that a snapshot too large for a cell is refused."""
        client = FakeSheetsClient()
        store = GoogleSheetsBucketStore(client=client)
        with pytest.raises(StorageError, match="at most"):
            store.save(Bucket.PAYMENTS, "x" * (MAX_CELL_CHARS + 1))
        assert len(client.sheet.rows) == 1

    def test_delete(self):
        """Test removing a bucket row."""
        client = FakeSheetsClient()
        store = GoogleSheetsBucketStore(client=client)
        store.save(Bucket.MEMBERS, "[]")
        assert store.delete(Bucket.MEMBERS) is True
        assert store.delete(Bucket.MEMBERS) is False
        assert store.load(Bucket.MEMBERS) is None

    def test_round_trip_through_sheet(self, sample_data):
        """Test codec and sheet together."""
        store = GoogleSheetsBucketStore(client=FakeSheetsClient())
        snapshot = dump_bucket(Bucket.MEMBERS, sample_data[Bucket.MEMBERS])
        store.save(Bucket.MEMBERS, snapshot)
        assert load_bucket(Bucket.MEMBERS, store.load(Bucket.MEMBERS)) == sample_data[Bucket.MEMBERS]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
