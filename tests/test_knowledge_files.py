"""
Tests for knowledge file upload, extraction fallbacks and moves.
"""

import io

import docx
import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.models.models import ActivityLog
from app.services.knowledge_files import build_content
from app.services.text_extraction import TextExtractor, file_extension


def _docx_bytes(*paragraphs: str) -> bytes:
    document = docx.Document()
    for text in paragraphs:
        document.add_paragraph(text)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


# =============================================================================
# Extraction helpers
# =============================================================================

class TestBuildContent:
    """Placeholder rules never leave an upload without content."""

    def test_txt_is_decoded_verbatim(self):
        """Plain text passes through."""
        assert build_content(TextExtractor(), b"hello", "a.txt", "txt") == "hello"

    def test_short_text_replaced_by_placeholder(self):
        """Fewer than five readable characters become a placeholder naming file and size."""
        content = build_content(TextExtractor(), b" hi \n", "tiny.txt", "txt")
        assert "tiny.txt" in content
        assert "5 bytes" in content

    def test_broken_pdf_falls_back(self):
        """Garbage PDF bytes still produce text with the filename and size."""
        data = b"not really a pdf"
        content = build_content(TextExtractor(), data, "report.pdf", "pdf")
        assert "report.pdf" in content
        assert f"{len(data)} bytes" in content

    def test_docx_paragraphs_extracted(self):
        """python-docx paragraphs are joined into the stored text."""
        data = _docx_bytes("Quarterly plan", "Ship the new cells")
        content = build_content(TextExtractor(), data, "plan.docx", "docx")
        assert "Quarterly plan" in content
        assert "Ship the new cells" in content

    def test_file_extension(self):
        assert file_extension("Report.PDF") == "pdf"
        assert file_extension("README") == ""


# =============================================================================
# Upload endpoint
# =============================================================================

class TestUpload:
    """POST /api/knowledge-files/upload"""

    @pytest.mark.anyio
    async def test_txt_upload_stores_content(self, client: AsyncClient, db):
        """A .txt with 'hello' is stored as exactly 'hello' and logged as activity."""
        response = await client.post(
            "/api/knowledge-files/upload",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["content"] == "hello"
        assert body["file_type"] == "txt"
        assert body["file_size"] == 5
        assert body["folder_id"] is None

        actions = (await db.execute(select(ActivityLog.action))).scalars().all()
        assert actions == ["upload_file"]

    @pytest.mark.anyio
    async def test_pdf_extraction_failure_keeps_upload(self, client: AsyncClient, failing_extractor):
        """When extraction throws, the upload still succeeds with a descriptive fallback."""
        data = b"%PDF-1.4 broken"
        response = await client.post(
            "/api/knowledge-files/upload",
            files={"file": ("contract.pdf", data, "application/pdf")},
        )
        assert response.status_code == 201
        content = response.json()["content"]
        assert content
        assert "contract.pdf" in content
        assert f"{len(data)} bytes" in content

    @pytest.mark.anyio
    async def test_unsupported_extension_rejected(self, client: AsyncClient):
        response = await client.post(
            "/api/knowledge-files/upload",
            files={"file": ("image.png", b"\x89PNG", "image/png")},
        )
        assert response.status_code == 400

    @pytest.mark.anyio
    async def test_oversized_upload_rejected(self, client: AsyncClient, settings):
        """Anything above the configured limit is refused."""
        data = b"a" * (settings.max_upload_bytes + 1)
        response = await client.post(
            "/api/knowledge-files/upload",
            files={"file": ("big.txt", data, "text/plain")},
        )
        assert response.status_code == 400

    @pytest.mark.anyio
    async def test_upload_into_folder(self, client: AsyncClient):
        """folder_id form field places the file in an owned folder."""
        folder = (await client.post("/api/folders", json={"name": "Specs"})).json()
        response = await client.post(
            "/api/knowledge-files/upload",
            data={"folder_id": str(folder["id"])},
            files={"file": ("spec.txt", b"cell chemistry", "text/plain")},
        )
        assert response.status_code == 201
        assert response.json()["folder_id"] == folder["id"]


# =============================================================================
# Move / Delete
# =============================================================================

class TestMoveAndDelete:

    @pytest.mark.anyio
    async def test_move_to_folder_and_back_to_root(self, client: AsyncClient):
        folder = (await client.post("/api/folders", json={"name": "Target"})).json()
        uploaded = (await client.post(
            "/api/knowledge-files/upload",
            files={"file": ("doc.txt", b"some text", "text/plain")},
        )).json()

        moved = await client.patch(f"/api/knowledge-files/{uploaded['id']}/move", json={"folder_id": folder["id"]})
        assert moved.json()["folder_id"] == folder["id"]

        back = await client.patch(f"/api/knowledge-files/{uploaded['id']}/move", json={"folder_id": None})
        assert back.json()["folder_id"] is None

    @pytest.mark.anyio
    async def test_move_into_foreign_folder_not_found(self, client_for, alice, bob):
        bob_client = client_for(bob.id)
        theirs = (await bob_client.post("/api/folders", json={"name": "Bob only"})).json()

        alice_client = client_for(alice.id)
        uploaded = (await alice_client.post(
            "/api/knowledge-files/upload",
            files={"file": ("doc.txt", b"some text", "text/plain")},
        )).json()

        response = await alice_client.patch(
            f"/api/knowledge-files/{uploaded['id']}/move", json={"folder_id": theirs["id"]}
        )
        assert response.status_code == 404

    @pytest.mark.anyio
    async def test_delete_is_owner_scoped(self, client_for, alice, bob):
        alice_client = client_for(alice.id)
        uploaded = (await alice_client.post(
            "/api/knowledge-files/upload",
            files={"file": ("doc.txt", b"some text", "text/plain")},
        )).json()

        assert (await client_for(bob.id).delete(f"/api/knowledge-files/{uploaded['id']}")).status_code == 404
        assert (await alice_client.delete(f"/api/knowledge-files/{uploaded['id']}")).status_code == 200
        assert (await alice_client.get("/api/knowledge-files")).json() == []
