import io

import docx
import fitz
import openpyxl

from graphmentor.agents.document import PRESENTATION_PLACEHOLDER, extract_text


def _docx_bytes(*paragraphs):
    document = docx.Document()
    for p in paragraphs:
        document.add_paragraph(p)
    buf = io.BytesIO()
    document.save(buf)
    return buf.getvalue()


def _xlsx_bytes():
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Grades"
    ws.append(["name", "score"])
    ws.append(["Ada", 95])
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def _pdf_bytes(text):
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


class TestExtractText:
    def test_docx(self):
        assert extract_text("notes.docx", _docx_bytes("Ohm's law", "V = IR")) == "Ohm's law\nV = IR"

    def test_xlsx(self):
        text = extract_text("grades.XLSX", _xlsx_bytes())
        assert text.startswith("Sheet: Grades\n")
        assert "name\tscore\n" in text
        assert "Ada\t95\n" in text

    def test_pdf(self):
        assert "Pythagoras" in extract_text("paper.pdf", _pdf_bytes("Pythagoras theorem"))

    def test_presentation_placeholder(self):
        assert extract_text("slides.pptx", b"whatever") == PRESENTATION_PLACEHOLDER


class TestUploadRoute:
    def test_docx_summarized(self, api, fake_model):
        fake_model.replies = ["## Summary\nV equals IR."]
        resp = api.post(
            "/api/upload",
            files={"file": ("notes.docx", _docx_bytes("V = IR"), "application/octet-stream")},
        )
        assert resp.status_code == 200
        assert resp.json() == {
            "fileName": "notes.docx",
            "fileType": "docx",
            "summary": "## Summary\nV equals IR.",
            "rawText": "V = IR",
        }
        prompt = fake_model.calls[0]["parts"][0]
        assert "Document Content:\nV = IR" in prompt

    def test_raw_text_capped(self, api):
        resp = api.post(
            "/api/upload",
            files={"file": ("long.docx", _docx_bytes("y" * 8000), "application/octet-stream")},
        )
        assert len(resp.json()["rawText"]) == 5000

    def test_unsupported_extension(self, api, fake_model):
        resp = api.post("/api/upload", files={"file": ("a.exe", b"MZ", "application/octet-stream")})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Unsupported file type"
        assert fake_model.calls == []

    def test_missing_file(self, api):
        resp = api.post("/api/upload", data={"other": "x"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "No file uploaded"}

    def test_corrupt_document_is_500(self, api):
        resp = api.post("/api/upload", files={"file": ("broken.docx", b"not a zip", "application/octet-stream")})
        assert resp.status_code == 500
        assert resp.json()["error"] == "Document processing failed"
