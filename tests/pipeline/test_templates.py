import io
from datetime import date

from openpyxl import load_workbook

from sheetbase.io.workbook import SpreadsheetReader
from sheetbase.models import InferredType, SemanticField
from sheetbase.pipeline.inference import infer_columns
from sheetbase.pipeline.templates import TemplateGenerator, sample_rows, sample_value

TODAY = date(2024, 3, 1)


def _fields() -> list[SemanticField]:
    return [
        SemanticField(field_key="amount", display_name="Amount", value_type="number", order=3),
        SemanticField(field_key="name", display_name="Name", value_type="text", order=1),
        SemanticField(field_key="email", display_name="Email", value_type="Email", order=2),
        SemanticField(field_key="start", display_name="Start Date", value_type="date", order=4),
        SemanticField(field_key="dept", display_name="Department", value_type="dropdown", order=5),
        SemanticField(field_key="phone", display_name="Phone", value_type="phone", order=6),
        SemanticField(field_key="level", display_name="Level", value_type="rating", order=7),
    ]


def test_sample_values_by_type() -> None:
    assert sample_value("text", 0, TODAY) == "Sample Text 1"
    assert sample_value("email", 1, TODAY) == "sample2@example.com"
    assert sample_value("number", 2, TODAY) == 300
    assert sample_value("date", 2, TODAY) == "2024-03-03"
    assert sample_value("phone", 0, TODAY) == "+1-555-1000"
    assert sample_value("dropdown", 3, TODAY) == "Option 1"
    assert sample_value("rating", 0, TODAY) == "Sample rating 1"


def test_sample_rows_follow_field_order() -> None:
    headers, rows = sample_rows(_fields(), 2, today=TODAY)

    assert headers == ["Name", "Email", "Amount", "Start Date", "Department", "Phone", "Level"]
    assert rows[1]["Amount"] == 200
    assert rows[1]["Email"] == "sample2@example.com"


def test_generated_workbook_has_bold_headers_and_rows() -> None:
    payload = TemplateGenerator(clock=lambda: TODAY).generate(_fields(), 3)

    ws = load_workbook(io.BytesIO(payload)).active
    assert [c.value for c in ws[1]][:3] == ["Name", "Email", "Amount"]
    assert ws["A1"].font.bold
    assert ws.max_row == 4


def test_generated_columns_reinfer_as_their_field_types() -> None:
    payload = TemplateGenerator(clock=lambda: TODAY).generate(_fields(), 5)

    dataset = SpreadsheetReader().read(payload, filename="template.xlsx")
    inferred = {c.name: c.inferred_type for c in infer_columns(dataset)}

    assert inferred["Name"] == InferredType.TEXT
    assert inferred["Email"] == InferredType.EMAIL
    assert inferred["Amount"] == InferredType.NUMBER
    assert inferred["Start Date"] == InferredType.DATE


def test_zero_sample_rows_writes_headers_only() -> None:
    payload = TemplateGenerator(clock=lambda: TODAY).generate(_fields(), 0)

    dataset = SpreadsheetReader().read(payload, filename="template.xlsx")

    assert dataset.headers[0] == "Name"
    assert dataset.rows == []
