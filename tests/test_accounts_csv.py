from __future__ import annotations

import pytest

from accounts_csv import AccountEntry, build_csv, csv_field, entries_from_array, parse_manual_input, split_line


@pytest.mark.parametrize(
    "line, parts",
    [
        ("123\ta@b.fr", ["123", "a@b.fr"]),
        ("123;a@b.fr", ["123", "a@b.fr"]),
        ("123,a@b.fr", ["123", "a@b.fr"]),
        ("123   a@b.fr", ["123", "a@b.fr"]),
        ("123\ta;b@c.fr", ["123", "a;b@c.fr"]),
    ],
)
def test_split_line_separator_priority(line, parts):
    assert split_line(line) == parts


def test_parse_manual_input_counts_skipped_lines():
    text = "\n".join(
        [
            "1001\tone@uni.fr",
            "",
            "1002; two@uni.fr ",
            "1003,no-at-sign",
            "lonely",
            "1004 four@uni.fr",
        ]
    )
    entries, skipped = parse_manual_input(text)
    assert entries == [
        AccountEntry("1001", "one@uni.fr"),
        AccountEntry("1002", "two@uni.fr"),
        AccountEntry("1004", "four@uni.fr"),
    ]
    assert skipped == 2


def test_parse_manual_input_empty():
    assert parse_manual_input("") == ([], 0)
    assert parse_manual_input("   \n \n") == ([], 0)


def test_entries_from_array_converts_numbers():
    rows = [[1001, "one@uni.fr"], [1002.0, "two@uni.fr", "extra"], [None, "x@y.fr"], ["only"]]
    entries, skipped = entries_from_array(rows)
    assert entries == [AccountEntry("1001", "one@uni.fr"), AccountEntry("1002", "two@uni.fr")]
    assert skipped == 2


def test_csv_field_quotes_only_when_needed():
    assert csv_field("plain") == "plain"
    assert csv_field("a,b") == '"a,b"'
    assert csv_field('say "hi"') == '"say ""hi"""'


def test_build_csv_without_cohort():
    csv = build_csv([AccountEntry("1001", "one@uni.fr")])
    assert csv == "username,email,auth,firstname,lastname\n1001,one@uni.fr,email,Etudiant,1001\n"


def test_build_csv_with_cohort():
    csv = build_csv([AccountEntry("1001", "one@uni.fr"), AccountEntry("1002", "two@uni.fr")], " L1-2024 ")
    assert csv.splitlines() == [
        "username,email,auth,firstname,lastname,cohort1",
        "1001,one@uni.fr,email,Etudiant,1001,L1-2024",
        "1002,two@uni.fr,email,Etudiant,1002,L1-2024",
    ]
