"""
Tests for the folder tree: depth cap, moves with level cascade, recursive delete.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.core.errors import DepthExceededError, NotFoundError, ValidationError
from app.models.models import Folder, KnowledgeFile
from app.services import folder_tree


async def _levels(db, user_id: str) -> dict[str, int]:
    db.expire_all()
    result = await db.execute(select(Folder).where(Folder.user_id == user_id))
    return {f.name: f.level for f in result.scalars().all()}


# =============================================================================
# Create
# =============================================================================

class TestCreateFolder:
    """Folder creation and the three-level cap."""

    @pytest.mark.anyio
    async def test_three_levels_then_depth_exceeded(self, client: AsyncClient):
        """A -> B -> C is allowed, D under C is not."""
        a = (await client.post("/api/folders", json={"name": "A"})).json()
        b = (await client.post("/api/folders", json={"name": "B", "parent_id": a["id"]})).json()
        c = (await client.post("/api/folders", json={"name": "C", "parent_id": b["id"]})).json()

        assert (a["level"], b["level"], c["level"]) == (1, 2, 3)

        response = await client.post("/api/folders", json={"name": "D", "parent_id": c["id"]})
        assert response.status_code == 400
        assert response.json()["error"] == "depth_exceeded"

        names = [f["name"] for f in (await client.get("/api/folders")).json()]
        assert "D" not in names

    @pytest.mark.anyio
    async def test_parent_of_another_user_is_not_found(self, db, alice, bob):
        """Parents are looked up among the caller's own folders only."""
        foreign = await folder_tree.create_folder(db, bob.id, "Bob's")
        with pytest.raises(NotFoundError):
            await folder_tree.create_folder(db, alice.id, "Mine", parent_id=foreign.id)

    @pytest.mark.anyio
    async def test_blank_name_rejected(self, client: AsyncClient):
        """Whitespace-only names are a validation error."""
        response = await client.post("/api/folders", json={"name": "   "})
        assert response.status_code == 400

    @pytest.mark.anyio
    async def test_list_ordered_by_sort_order_then_name(self, db, alice):
        """Listing order is sort_order, then name."""
        await folder_tree.create_folder(db, alice.id, "beta")
        await folder_tree.create_folder(db, alice.id, "alpha")
        first = await folder_tree.create_folder(db, alice.id, "zulu")
        first.sort_order = -1
        await db.commit()

        names = [f.name for f in await folder_tree.list_folders(db, alice.id)]
        assert names == ["zulu", "alpha", "beta"]

    @pytest.mark.anyio
    async def test_requires_authentication(self, client_for, alice):
        """No session, no folders."""
        response = await client_for(None).get("/api/folders")
        assert response.status_code == 401


# =============================================================================
# Rename / Move
# =============================================================================

class TestMoveFolder:
    """Re-parenting keeps the level invariant for the whole subtree."""

    @pytest.mark.anyio
    async def test_rename(self, client: AsyncClient):
        """Rename keeps position and level."""
        folder = (await client.post("/api/folders", json={"name": "Old"})).json()
        response = await client.patch(f"/api/folders/{folder['id']}/rename", json={"name": "New"})
        assert response.status_code == 200
        assert response.json()["name"] == "New"
        assert response.json()["level"] == 1

    @pytest.mark.anyio
    async def test_self_parent_rejected_without_change(self, client: AsyncClient):
        """Moving a folder under itself fails and changes nothing."""
        folder = (await client.post("/api/folders", json={"name": "Solo"})).json()
        response = await client.patch(f"/api/folders/{folder['id']}/move", json={"parent_id": folder["id"]})
        assert response.status_code == 400

        listed = (await client.get("/api/folders")).json()
        assert listed[0]["parent_id"] is None
        assert listed[0]["level"] == 1

    @pytest.mark.anyio
    async def test_move_cascades_levels(self, db, alice):
        """Moving a two-level subtree to the root relevels every descendant."""
        a = await folder_tree.create_folder(db, alice.id, "A")
        b = await folder_tree.create_folder(db, alice.id, "B", parent_id=a.id)
        await folder_tree.create_folder(db, alice.id, "C", parent_id=b.id)

        await folder_tree.move_folder(db, b.id, alice.id, None)

        assert await _levels(db, alice.id) == {"A": 1, "B": 1, "C": 2}

    @pytest.mark.anyio
    async def test_move_that_pushes_descendant_too_deep_rejected(self, db, alice):
        """B (with child C) cannot go under a level-2 folder: C would reach level 4."""
        x = await folder_tree.create_folder(db, alice.id, "X")
        y = await folder_tree.create_folder(db, alice.id, "Y", parent_id=x.id)
        b = await folder_tree.create_folder(db, alice.id, "B")
        await folder_tree.create_folder(db, alice.id, "C", parent_id=b.id)

        with pytest.raises(DepthExceededError):
            await folder_tree.move_folder(db, b.id, alice.id, y.id)

        assert await _levels(db, alice.id) == {"X": 1, "Y": 2, "B": 1, "C": 2}

    @pytest.mark.anyio
    async def test_move_under_own_descendant_rejected(self, db, alice):
        """Cycles are refused."""
        a = await folder_tree.create_folder(db, alice.id, "A")
        b = await folder_tree.create_folder(db, alice.id, "B", parent_id=a.id)

        with pytest.raises(ValidationError):
            await folder_tree.move_folder(db, a.id, alice.id, b.id)

    @pytest.mark.anyio
    async def test_move_to_foreign_parent_not_found(self, db, alice, bob):
        """Target folder must belong to the caller."""
        mine = await folder_tree.create_folder(db, alice.id, "Mine")
        theirs = await folder_tree.create_folder(db, bob.id, "Theirs")

        with pytest.raises(NotFoundError):
            await folder_tree.move_folder(db, mine.id, alice.id, theirs.id)


# =============================================================================
# Tree / Delete
# =============================================================================

class TestTreeAndDelete:
    """Nested view and recursive delete."""

    @pytest.mark.anyio
    async def test_orphan_shows_as_root(self, db, alice):
        """A folder whose parent no longer exists is listed at the top level."""
        db.add(Folder(user_id=alice.id, name="Orphan", parent_id=9999, level=2))
        await db.commit()
        await folder_tree.create_folder(db, alice.id, "Root")

        tree = await folder_tree.folder_tree(db, alice.id)
        assert sorted(node["name"] for node in tree) == ["Orphan", "Root"]

    @pytest.mark.anyio
    async def test_tree_endpoint_nests_children(self, client: AsyncClient):
        """GET /api/folders/tree returns children inside their parent."""
        a = (await client.post("/api/folders", json={"name": "A"})).json()
        await client.post("/api/folders", json={"name": "B", "parent_id": a["id"]})

        tree = (await client.get("/api/folders/tree")).json()
        assert len(tree) == 1
        assert tree[0]["children"][0]["name"] == "B"

    @pytest.mark.anyio
    async def test_delete_removes_subtree_and_keeps_files(self, db, alice):
        """Descendants go away, contained files move to the root, none are deleted."""
        a = await folder_tree.create_folder(db, alice.id, "A")
        b = await folder_tree.create_folder(db, alice.id, "B", parent_id=a.id)
        c = await folder_tree.create_folder(db, alice.id, "C", parent_id=b.id)
        keep = await folder_tree.create_folder(db, alice.id, "Keep")
        keep_id = keep.id
        for folder in (a, b, c, keep):
            db.add(KnowledgeFile(
                user_id=alice.id, folder_id=folder.id, file_name=f"{folder.name}.txt",
                file_type="txt", file_size=5, content="hello",
            ))
        await db.commit()

        removed = await folder_tree.delete_folder(db, a.id, alice.id)
        assert removed == 3

        db.expire_all()
        folders = (await db.execute(select(Folder).where(Folder.user_id == "alice"))).scalars().all()
        assert [f.name for f in folders] == ["Keep"]

        files = (await db.execute(select(KnowledgeFile))).scalars().all()
        assert len(files) == 4
        by_name = {f.file_name: f.folder_id for f in files}
        assert by_name == {"A.txt": None, "B.txt": None, "C.txt": None, "Keep.txt": keep_id}

    @pytest.mark.anyio
    async def test_delete_other_users_folder_not_found(self, client_for, alice, bob, db):
        """Deleting someone else's folder looks exactly like a missing folder."""
        theirs = await folder_tree.create_folder(db, bob.id, "Theirs")
        response = await client_for(alice.id).delete(f"/api/folders/{theirs.id}")
        assert response.status_code == 404
