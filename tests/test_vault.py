"""Tests for the filesystem vault, frontmatter access and folder service."""

import logging

import pytest

from stage_filer.folders import FolderService
from stage_filer.frontmatter_service import FrontmatterService
from stage_filer.models import Folder, Note
from stage_filer.vault import Vault, VaultError


@pytest.fixture
def tree(vault_dir, write_note):
    for folder in ["archive", "inbox/sub", "projects/alpha", "templates/daily", ".obsidian"]:
        (vault_dir / folder).mkdir(parents=True, exist_ok=True)
    write_note("inbox/a.md", stage="done")
    write_note("projects/alpha/b.md")
    write_note(".obsidian/hidden.md")
    (vault_dir / "inbox" / "image.png").write_bytes(b"")
    return vault_dir


class TestVault:
    def test_folders_skip_hidden(self, vault, tree):
        assert [f.path for f in vault.get_all_folders()] == [
            "archive",
            "inbox",
            "inbox/sub",
            "projects",
            "projects/alpha",
            "templates",
            "templates/daily",
        ]

    def test_markdown_files(self, vault, tree):
        assert [n.path for n in vault.get_markdown_files()] == ["inbox/a.md", "projects/alpha/b.md"]

    def test_get_abstract_file(self, vault, tree):
        assert vault.get_abstract_file("inbox") == Folder("inbox")
        assert vault.get_abstract_file("/inbox/") == Folder("inbox")
        assert vault.get_abstract_file("inbox/a.md") == Note("inbox/a.md")
        assert vault.get_abstract_file("inbox/missing.md") is None

    def test_relative_path(self, vault, vault_dir):
        assert vault.relative_path(vault_dir / "inbox" / "a.md") == "inbox/a.md"
        assert vault.relative_path(vault_dir.parent / "elsewhere.md") is None

    @pytest.mark.asyncio
    async def test_rename_updates_handle_and_notifies(self, vault, tree):
        renames = []
        vault.add_listener(on_rename=lambda old, new: renames.append((old, new)))
        note = Note("inbox/a.md")

        await vault.rename(note, "archive/a.md")

        assert note.path == "archive/a.md"
        assert (tree / "archive" / "a.md").exists()
        assert renames == [("inbox/a.md", "archive/a.md")]

    @pytest.mark.asyncio
    async def test_rename_refuses_to_overwrite(self, vault, tree, write_note):
        write_note("archive/a.md")
        note = Note("inbox/a.md")

        with pytest.raises(VaultError):
            await vault.rename(note, "archive/a.md")

        assert note.path == "inbox/a.md"
        assert (tree / "inbox" / "a.md").exists()

    @pytest.mark.asyncio
    async def test_rename_missing_note(self, vault, tree):
        with pytest.raises(VaultError):
            await vault.rename(Note("inbox/missing.md"), "archive/missing.md")

    @pytest.mark.asyncio
    async def test_trash_avoids_collisions(self, vault, tree, write_note):
        deleted = []
        vault.add_listener(on_delete=deleted.append)
        write_note("inbox/c.md")
        write_note("projects/c.md")

        first = await vault.trash(Note("inbox/c.md"))
        second = await vault.trash(Note("projects/c.md"))

        assert first == ".trash/c.md"
        assert second == ".trash/c_1.md"
        assert deleted == ["inbox/c.md", "projects/c.md"]
        assert [n.path for n in vault.get_markdown_files()] == ["inbox/a.md", "projects/alpha/b.md"]

    @pytest.mark.asyncio
    async def test_create_folder_is_idempotent(self, vault, tree):
        assert await vault.create_folder("bin/old") == Folder("bin/old")
        assert await vault.create_folder("bin/old/") == Folder("bin/old")
        assert (tree / "bin" / "old").is_dir()

    @pytest.mark.asyncio
    async def test_create_folder_logs_only_new_folders(self, vault, tree, caplog):
        caplog.set_level(logging.INFO, logger="stage_filer.vault")

        await vault.create_folder("bin")
        await vault.create_folder("bin")
        await vault.create_folder("projects")

        created = [r.getMessage() for r in caplog.records if r.getMessage().startswith("Created folder")]
        assert created == ["Created folder bin"]

    @pytest.mark.asyncio
    async def test_create_folder_over_file(self, vault, tree):
        (tree / "bin").write_text("", encoding="utf-8")

        with pytest.raises(VaultError):
            await vault.create_folder("bin")

    def test_custom_trash_folder(self, vault_dir):
        vault = Vault(vault_dir, trash_folder="/.deleted/")

        assert vault.is_in_trash(".deleted/a.md")
        assert not vault.is_in_trash(".trash/a.md")


class TestFrontmatterService:
    def test_get_stage(self, vault, write_note):
        service = FrontmatterService(vault)
        write_note("inbox/a.md", stage="done")
        write_note("inbox/b.md", stage=3)
        write_note("inbox/c.md")

        assert service.get_stage(Note("inbox/a.md")) == "done"
        assert service.get_stage(Note("inbox/b.md")) is None
        assert service.get_stage(Note("inbox/c.md")) is None
        assert service.get_stage(Note("inbox/missing.md")) is None

    def test_malformed_frontmatter_has_no_stage(self, vault, vault_dir):
        (vault_dir / "inbox" / "bad.md").write_text("---\nstage: [done\n---\nBody\n", encoding="utf-8")

        assert vault.read_frontmatter(Note("inbox/bad.md")) is None
        assert FrontmatterService(vault).get_stage(Note("inbox/bad.md")) is None

    @pytest.mark.asyncio
    async def test_set_stage_keeps_other_fields(self, vault, vault_dir, write_note):
        write_note("inbox/a.md", body="Hello there", title="A", stage="done")
        note = Note("inbox/a.md")

        await FrontmatterService(vault).set_stage(note, "draft")

        assert vault.read_frontmatter(note) == {"title": "A", "stage": "draft"}
        assert "Hello there" in (vault_dir / "inbox" / "a.md").read_text(encoding="utf-8")

    @pytest.mark.asyncio
    async def test_set_stage_on_plain_note(self, vault, write_note):
        write_note("inbox/a.md", body="Plain")
        note = Note("inbox/a.md")

        await FrontmatterService(vault).set_stage(note, "draft")

        assert vault.read_frontmatter(note) == {"stage": "draft"}

    @pytest.mark.asyncio
    async def test_remove_last_field_drops_block(self, vault, vault_dir, write_note):
        write_note("inbox/a.md", body="Body text", stage="done")

        await FrontmatterService(vault).remove_stage(Note("inbox/a.md"))

        assert (vault_dir / "inbox" / "a.md").read_text(encoding="utf-8") == "Body text\n"

    @pytest.mark.asyncio
    async def test_unchanged_stage_leaves_file_untouched(self, vault, vault_dir):
        original = "---\ntitle: T\nstage: draft\naliases:\n- x\n---\n\n    indented code\n\nBody\n"
        path = vault_dir / "inbox" / "a.md"
        path.write_text(original, encoding="utf-8")

        await FrontmatterService(vault).set_stage(Note("inbox/a.md"), "draft")

        assert path.read_text(encoding="utf-8") == original

    @pytest.mark.asyncio
    async def test_update_keeps_field_order_and_body(self, vault, vault_dir):
        path = vault_dir / "inbox" / "a.md"
        path.write_text(
            "---\ntitle: T\nstage: done\naliases:\n- x\n---\n\n    indented code\n\nBody\n",
            encoding="utf-8",
        )

        await FrontmatterService(vault).set_stage(Note("inbox/a.md"), "draft")
        assert path.read_text(encoding="utf-8") == (
            "---\ntitle: T\nstage: draft\naliases:\n- x\n---\n\n    indented code\n\nBody\n"
        )

        await FrontmatterService(vault).remove_stage(Note("inbox/a.md"))
        assert path.read_text(encoding="utf-8") == (
            "---\ntitle: T\naliases:\n- x\n---\n\n    indented code\n\nBody\n"
        )

    @pytest.mark.asyncio
    async def test_update_malformed_note_raises(self, vault, vault_dir):
        (vault_dir / "inbox" / "bad.md").write_text("---\nstage: [done\n---\n", encoding="utf-8")

        with pytest.raises(VaultError):
            await FrontmatterService(vault).remove_stage(Note("inbox/bad.md"))


class TestFolderService:
    def test_suggestions_exclude_watched_and_excluded_subtrees(self, vault, tree):
        service = FolderService(vault)

        suggestions = service.get_suggestions(["inbox"], ["/templates/"])

        assert [f.path for f in suggestions] == ["archive", "projects", "projects/alpha"]

    def test_suggestions_match_whole_segments(self, vault, tree):
        (tree / "inbox-old").mkdir()

        paths = [f.path for f in FolderService(vault).get_suggestions(["inbox"], [])]

        assert "inbox-old" in paths
        assert "inbox" not in paths

    def test_get_folder(self, vault, tree):
        service = FolderService(vault)

        assert service.get_folder("projects/alpha/") == Folder("projects/alpha")
        assert service.get_folder("inbox/a.md") is None
        assert service.get_folder("nowhere") is None

    @pytest.mark.asyncio
    async def test_ensure_folder(self, vault, tree):
        service = FolderService(vault)

        assert await service.ensure_folder("archive") == Folder("archive")
        assert await service.ensure_folder("bin/2024") == Folder("bin/2024")
        assert (tree / "bin" / "2024").is_dir()

    @pytest.mark.asyncio
    async def test_move_note_into_folder(self, vault, tree):
        note = Note("inbox/a.md")

        await FolderService(vault).move_note(note, Folder("projects/alpha"))

        assert note.path == "projects/alpha/a.md"
        assert (tree / "projects" / "alpha" / "a.md").exists()
