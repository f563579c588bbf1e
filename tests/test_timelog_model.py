"""Tests for decoding, encoding and adding entries to time-log documents."""
import pytest

from timelog_model import (
    EntryValidationError,
    LogDecodeError,
    LogDocument,
    NewEntry,
    Period,
    TimeEntry,
    add_entry,
    decode_document,
    document_to_wire,
    encode_document,
    is_month_name,
)


class TestDecodeDocument:
    """Tests for decode_document."""

    def test_sample_block(self, sample_block):
        document = decode_document(sample_block)
        assert document.project == "Acme"
        assert document.period == Period(from_date="01-06-2025", to_date="30-06-2025")
        assert list(document.months) == ["June"]
        assert list(document.months["June"]) == ["01-06-2025", "02-06-2025", "03-06-2025"]
        first = document.months["June"]["01-06-2025"][0]
        assert first == TimeEntry(
            from_time="09:00", to_time="17:00", break_text="30m", note="Planning"
        )

    def test_unquoted_clock_times_stay_strings(self):
        document = decode_document("June:\n  01-06-2025:\n    - from: 09:00\n      to: 17:00\n")
        entry = document.months["June"]["01-06-2025"][0]
        assert entry.from_time == "09:00"
        assert entry.to_time == "17:00"

    def test_plain_numbers_still_decode_as_numbers(self):
        document = decode_document("budget: 40\nrate: 1.5\n")
        assert document.extras == {"budget": 40, "rate": 1.5}

    def test_empty_text_gives_empty_document(self):
        document = decode_document("")
        assert document.project is None
        assert document.period is None
        assert document.months == {}

    def test_empty_month_and_day(self):
        document = decode_document("June:\nJuly:\n  01-07-2025:\n")
        assert document.months == {"June": {}, "July": {"01-07-2025": []}}

    def test_unknown_keys_are_kept_as_extras(self):
        document = decode_document("Junee:\n  01-06-2025: []\nclient: Initech\n")
        assert document.months == {}
        assert document.extras == {"Junee": {"01-06-2025": []}, "client": "Initech"}

    @pytest.mark.parametrize(
        "text",
        [
            "- a\n- b\n",
            "just a string",
            "June: [1, 2]\n",
            "June:\n  01-06-2025: nope\n",
            "June:\n  01-06-2025:\n    - 09:00\n",
            "period: 2025\n",
        ],
    )
    def test_shape_errors(self, text):
        with pytest.raises(LogDecodeError):
            decode_document(text)

    def test_invalid_yaml(self):
        with pytest.raises(LogDecodeError, match="Invalid YAML"):
            decode_document("June:\n  - from: [09:00\n")

    def test_yaml_11_words_stay_text(self):
        text = (
            "project: no\n"
            "June:\n"
            "  01-06-2025:\n"
            "  - from: 09:00\n"
            "    to: 10:00\n"
            "    note: yes\n"
            "  - from: 11:00\n"
            "    to: 12:00\n"
            "    note: off\n"
        )
        document = decode_document(text)
        entries = document.months["June"]["01-06-2025"]
        assert document.project == "no"
        assert [entry.note for entry in entries] == ["yes", "off"]
        assert encode_document(document) == text

    def test_true_and_false_are_booleans(self):
        document = decode_document("billable: true\narchived: False\n")
        assert document.extras == {"billable": True, "archived": False}

    def test_is_month_name(self):
        assert is_month_name("June")
        assert not is_month_name("june")
        assert not is_month_name(6)


class TestEncodeDocument:
    """Tests for encode_document."""

    def test_writes_plain_two_space_yaml(self, sample_block):
        text = encode_document(decode_document(sample_block))
        assert "from: 09:00\n" in text
        assert "to: 17:00\n" in text
        assert "'" not in text
        assert '"' not in text
        assert text.startswith("project: Acme\nperiod:\n  from: 01-06-2025\n")
        assert "June:\n  01-06-2025:\n  - from: 09:00\n" in text

    def test_encoding_is_stable(self, sample_block):
        once = encode_document(decode_document(sample_block))
        twice = encode_document(decode_document(once))
        assert once == twice

    def test_round_trip_keeps_document(self, sample_block):
        document = decode_document(sample_block)
        assert decode_document(encode_document(document)) == document

    def test_shared_entries_are_written_in_full(self):
        entry = TimeEntry(from_time="09:00", to_time="10:00", break_text="0m")
        document = LogDocument(
            months={"June": {"01-06-2025": [entry], "02-06-2025": [entry]}}
        )
        text = encode_document(document)
        assert "&" not in text
        assert "*" not in text
        assert text.count("from: 09:00") == 2

    def test_extras_and_key_order_survive(self):
        text = "client: Initech\nJune:\n  01-06-2025: []\nproject: Acme\n"
        document = decode_document(text)
        wire = document_to_wire(document)
        assert list(wire) == ["client", "June", "project"]
        assert decode_document(encode_document(document)).extras == {"client": "Initech"}

    def test_entry_extras_survive(self):
        text = "June:\n  01-06-2025:\n  - from: 09:00\n    to: 10:00\n    tag: ops\n"
        document = decode_document(text)
        assert document.months["June"]["01-06-2025"][0].extra == {"tag": "ops"}
        assert "tag: ops" in encode_document(document)

    def test_new_months_follow_in_calendar_order(self):
        document = LogDocument(
            project="Acme",
            months={"July": {}, "March": {}},
            key_order=("project",),
        )
        assert list(document_to_wire(document)) == ["project", "March", "July"]

    def test_absent_fields_are_not_written(self):
        entry = TimeEntry(from_time="09:00", to_time="10:00")
        wire = document_to_wire(LogDocument(months={"June": {"01-06-2025": [entry]}}))
        assert wire == {"June": {"01-06-2025": [{"from": "09:00", "to": "10:00"}]}}


class TestAddEntry:
    """Tests for add_entry and its validation."""

    def test_does_not_modify_input(self, sample_block):
        document = decode_document(sample_block)
        before = encode_document(document)
        add_entry(document, NewEntry(date="01-06-2025", from_time="18:00", to_time="19:00"))
        assert encode_document(document) == before

    def test_entries_sorted_latest_first(self, sample_block):
        document = decode_document(sample_block)
        document = add_entry(
            document, NewEntry(date="01-06-2025", from_time="18:00", to_time="19:00")
        )
        document = add_entry(
            document, NewEntry(date="01-06-2025", from_time="07:00", to_time="08:00")
        )
        starts = [entry.from_time for entry in document.months["June"]["01-06-2025"]]
        assert starts == ["18:00", "09:00", "07:00"]

    def test_unresolvable_start_sorts_last(self, sample_block):
        document = add_entry(
            decode_document(sample_block),
            NewEntry(date="03-06-2025", from_time="00:00", to_time="01:00"),
        )
        starts = [entry.from_time for entry in document.months["June"]["03-06-2025"]]
        assert starts == ["00:00", "9:99"]

    def test_creates_month_and_day(self, sample_block):
        document = add_entry(
            decode_document(sample_block),
            NewEntry(
                date="01-07-2025",
                from_time="09:00",
                to_time="12:00",
                break_text="",
                note="Kickoff",
            ),
        )
        assert list(document.months) == ["June", "July"]
        assert document.months["July"]["01-07-2025"] == [
            TimeEntry(from_time="09:00", to_time="12:00", break_text="0m", note="Kickoff")
        ]
        assert list(document_to_wire(document))[-1] == "July"

    def test_empty_note_is_omitted(self):
        document = add_entry(
            LogDocument(),
            NewEntry(date="02-06-2025", from_time="09:00", to_time="10:00", note=""),
        )
        entry = document.months["June"]["02-06-2025"][0]
        assert entry.note is None
        assert "note" not in encode_document(document)

    def test_break_is_kept_as_typed(self):
        document = add_entry(
            LogDocument(),
            NewEntry(date="02-06-2025", from_time="09:00", to_time="10:00", break_text="1.5h"),
        )
        assert document.months["June"]["02-06-2025"][0].break_text == "1.5h"

    @pytest.mark.parametrize(
        "new_entry, message",
        [
            (NewEntry(date="", from_time="09:00", to_time="10:00"), "Please select a date."),
            (
                NewEntry(date="01-06-2025", from_time="9:00", to_time="10:00"),
                "valid 'From' time",
            ),
            (
                NewEntry(date="01-06-2025", from_time="09:00", to_time=""),
                "valid 'To' time",
            ),
            (
                NewEntry(
                    date="01-06-2025", from_time="09:00", to_time="10:00", break_text="lunch"
                ),
                "Invalid break format",
            ),
            (
                NewEntry(date="31-02-2025", from_time="09:00", to_time="10:00"),
                "Invalid date: 31-02-2025",
            ),
        ],
    )
    def test_validation_errors(self, new_entry, message):
        with pytest.raises(EntryValidationError, match=message):
            add_entry(LogDocument(), new_entry)
