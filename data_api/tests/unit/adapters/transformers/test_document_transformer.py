from data_api.app.adapters.transformers.document_transformer import DocumentTransformer
from data_api.app.domain.models import FileType, ParsedBlock, ParsedDocument, SourceRef


def make_doc(*rows):
    return ParsedDocument(
        source=SourceRef(uri="/data/people.csv", file_type=FileType.csv),
        blocks=[ParsedBlock(type="row", meta=r) for r in rows],
        meta={"rows": len(rows)},
    )


def test_rows_mapped_through_dictionary(people_dictionary):
    # given
    doc = make_doc({
        "ID": "1", "NAME": "Marilyn", "AGE": "70", "CITY": "San Francisco",
        "SAT_AVG_2012": "1200.5", "LAT": "37.77", "LON": "-122.41", "UNUSED": "x",
    })

    # when
    docs = list(DocumentTransformer(people_dictionary).transform(doc))

    # then
    assert docs == [{
        "id": 1,
        "name": "Marilyn",
        "age": 70,
        "city": "San Francisco",
        "2012": {"sat_average": 1200.5},
        "location": {"lat": 37.77, "lon": -122.41},
    }]


def test_bad_value_becomes_none(people_dictionary):
    docs = list(DocumentTransformer(people_dictionary).transform(make_doc({"ID": "2", "AGE": "old"})))
    assert docs == [{"id": 2, "age": None}]


def test_null_value_kept_as_none(people_dictionary):
    docs = list(DocumentTransformer(people_dictionary).transform(make_doc({"ID": "3", "AGE": None})))
    assert docs == [{"id": 3, "age": None}]


def test_empty_dictionary_passes_columns_through(empty_dictionary):
    docs = list(DocumentTransformer(empty_dictionary).transform(make_doc({"school.name": "MIT", "ID": "1"})))
    assert docs == [{"school": {"name": "MIT"}, "ID": "1"}]
