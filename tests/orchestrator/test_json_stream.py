from novablick.orchestrator.llm import JsonArrayStreamParser


def test_elements_are_returned_as_soon_as_they_close() -> None:
    parser = JsonArrayStreamParser()

    assert parser.feed('```json\n[{"id": "s') == []
    assert parser.feed('tep-1", "tools": ["a"]}, {"id"') == [{"id": "step-1", "tools": ["a"]}]
    assert parser.feed(': "step-2"}]\n```') == [{"id": "step-2"}]
    assert parser.finished


def test_brackets_inside_strings_do_not_close_elements() -> None:
    parser = JsonArrayStreamParser()

    elements = parser.feed('[{"task": "sum [a] and {b}", "note": "quote \\" ]"}]')

    assert elements == [{"task": "sum [a] and {b}", "note": 'quote " ]'}]
    assert parser.finished


def test_malformed_element_is_skipped() -> None:
    parser = JsonArrayStreamParser()

    elements = parser.feed('[{"id": 1,}, {"id": 2}]')

    assert elements == [{"id": 2}]


def test_feeding_after_the_array_ends_is_ignored() -> None:
    parser = JsonArrayStreamParser()
    parser.feed("[]")

    assert parser.finished
    assert parser.feed('[{"id": 3}]') == []
