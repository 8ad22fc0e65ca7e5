"""Tests for the Showdown protocol line parser."""

from tourbridge.core.protocol import (
    LineKind,
    RoomMarker,
    TerminationReason,
    TournamentCreated,
    TournamentEnded,
    TournamentTerminated,
    Unclassified,
    parse_frame,
    parse_line,
    parse_results,
)


class TestParseLine:
    def test_room_marker(self) -> None:
        event = parse_line(">ou")
        assert event == RoomMarker(room="ou")
        assert event.kind is LineKind.ROOM_MARKER

    def test_create_with_name(self) -> None:
        event = parse_line("|tournament|create|gen9ou|Elimination|8|Gen9OU Cup")
        assert isinstance(event, TournamentCreated)
        assert event.format == "gen9ou"
        assert event.name == "Gen9OU Cup"

    def test_create_without_name_falls_back_to_format(self) -> None:
        event = parse_line("|tournament|create|gen9monotype|Elimination|0")
        assert isinstance(event, TournamentCreated)
        assert event.name == "gen9monotype"

    def test_create_with_empty_name_falls_back_to_format(self) -> None:
        event = parse_line("|tournament|create|gen9ou|Elimination|8|")
        assert isinstance(event, TournamentCreated)
        assert event.name == "gen9ou"

    def test_end_with_results(self) -> None:
        event = parse_line('|tournament|end|{"results":[["Alice"],["Bob"],["Carol"]]}')
        assert isinstance(event, TournamentEnded)
        assert event.results is not None
        assert event.results.placings == [["Alice"], ["Bob"], ["Carol"]]

    def test_end_with_malformed_json(self) -> None:
        event = parse_line("|tournament|end|{not json")
        assert isinstance(event, TournamentEnded)
        assert event.results is None

    def test_forceend(self) -> None:
        event = parse_line("|tournament|forceend")
        assert event == TournamentTerminated(reason=TerminationReason.FORCEEND)

    def test_expire(self) -> None:
        event = parse_line("|tournament|expire|")
        assert event == TournamentTerminated(reason=TerminationReason.EXPIRE)

    def test_other_tournament_lines_unclassified(self) -> None:
        assert isinstance(parse_line("|tournament|update|{}"), Unclassified)
        assert isinstance(parse_line("|c|~|hello"), Unclassified)

    def test_marker_takes_priority(self) -> None:
        # A marker whose room text looks like a protocol line is still a marker.
        assert parse_line(">|tournament|forceend") == RoomMarker(room="|tournament|forceend")


class TestParseResults:
    def test_team_placings(self) -> None:
        results = parse_results('{"results":[["Alice","Ann"],["Bob","Ben"]]}')
        assert results is not None
        assert results.placings == [["Alice", "Ann"], ["Bob", "Ben"]]

    def test_capped_at_three(self) -> None:
        results = parse_results('{"results":[["A"],["B"],["C"],["D"]]}')
        assert results is not None
        assert len(results.placings) == 3

    def test_empty_slot_kept_in_position(self) -> None:
        results = parse_results('{"results":[["Alice"],[],["Carol"],["Dave"]]}')
        assert results is not None
        assert results.placings == [["Alice"], [], ["Carol"]]

    def test_only_empty_slots(self) -> None:
        assert parse_results('{"results":[[],[]]}') is None

    def test_bare_names_are_wrapped(self) -> None:
        results = parse_results('{"results":["Alice","Bob"]}')
        assert results is not None
        assert results.placings == [["Alice"], ["Bob"]]

    def test_extra_fields_ignored(self) -> None:
        results = parse_results('{"results":[["Alice"]],"format":"gen9ou","bracketData":{}}')
        assert results is not None
        assert results.placings == [["Alice"]]

    def test_missing_results(self) -> None:
        assert parse_results('{"format":"gen9ou"}') is None

    def test_null_results(self) -> None:
        assert parse_results('{"results":null}') is None

    def test_empty_payload(self) -> None:
        assert parse_results("") is None

    def test_wrong_shape(self) -> None:
        assert parse_results('{"results":{"winner":"Alice"}}') is None
        assert parse_results("[1, 2, 3]") is None


class TestParseFrame:
    def test_lines_in_order_and_empty_lines_skipped(self) -> None:
        frame = ">ou\n\n|tournament|create|gen9ou|Elimination|8|Gen9OU Cup\n|j|Alice\n"
        events = list(parse_frame(frame))
        assert [e.kind for e in events] == [
            LineKind.ROOM_MARKER,
            LineKind.CREATE,
            LineKind.UNCLASSIFIED,
        ]

    def test_carriage_returns_stripped(self) -> None:
        events = list(parse_frame(">ou\r\n|tournament|forceend\r\n"))
        assert events[0] == RoomMarker(room="ou")
        assert events[1] == TournamentTerminated(reason=TerminationReason.FORCEEND)

    def test_is_lazy(self) -> None:
        events = parse_frame(">ou\n>lobby")
        assert next(events) == RoomMarker(room="ou")
        assert next(events) == RoomMarker(room="lobby")
