"""
Hierarchy index tests — lookup structures and snapshot loading.
"""
import os

import pytest

from tfdrift.models.hierarchy import HierarchyNode
from tfdrift.models.iam import ResourceType

FIXTURES = os.path.join(os.path.dirname(__file__), "fixtures")


def _folder(id_, name):
    return HierarchyNode(id=id_, name=name, node_type=ResourceType.FOLDER)


def _project(id_, name):
    return HierarchyNode(id=id_, name=name, node_type=ResourceType.PROJECT)


# --------------------------------------------------------- Index
class TestHierarchyIndex:
    def setup_method(self):
        from tfdrift.hierarchy import HierarchyIndex
        self.HierarchyIndex = HierarchyIndex

    def test_by_id_merges_folders_and_projects(self):
        idx = self.HierarchyIndex.build(
            {"111": _folder("111", "eng")}, {"123": _project("123", "proj-a")}
        )
        assert set(idx.by_id) == {"111", "123"}
        assert idx.by_id["111"].node_type == ResourceType.FOLDER
        assert idx.by_id["123"].node_type == ResourceType.PROJECT

    def test_name_maps_are_per_type(self):
        idx = self.HierarchyIndex.build(
            {"111": _folder("111", "shared")}, {"789": _project("789", "shared")}
        )
        assert idx.folders_by_name["shared"].id == "111"
        assert idx.projects_by_name["shared"].id == "789"

    def test_mapping_keys_are_ignored(self):
        idx = self.HierarchyIndex.build({"eng": _folder("111", "eng")}, {})
        assert "111" in idx.by_id
        assert "eng" not in idx.by_id

    def test_accepts_plain_iterables(self):
        idx = self.HierarchyIndex.build([_folder("1", "a")], (_project("2", "b") for _ in range(1)))
        assert set(idx.by_id) == {"1", "2"}
        assert "b" in idx.projects_by_name

    def test_empty_inputs(self):
        idx = self.HierarchyIndex.build({}, {})
        assert len(idx) == 0
        assert dict(idx.folders_by_name) == {}
        assert dict(idx.projects_by_name) == {}

    def test_default_index_is_empty(self):
        assert len(self.HierarchyIndex()) == 0

    def test_id_collision_last_write_wins(self, caplog):
        with caplog.at_level("WARNING", logger="tfdrift.hierarchy"):
            idx = self.HierarchyIndex.build(
                {"5": _folder("5", "dup-folder")}, {"5": _project("5", "dup-project")}
            )
        assert idx.by_id["5"].node_type == ResourceType.PROJECT
        assert "shared by" in caplog.text

    def test_index_is_read_only(self):
        idx = self.HierarchyIndex.build({"111": _folder("111", "eng")}, {})
        with pytest.raises(TypeError):
            idx.by_id["999"] = _folder("999", "x")

    def test_rebuild_does_not_touch_previous_index(self):
        old = self.HierarchyIndex.build({"111": _folder("111", "eng")}, {})
        new = self.HierarchyIndex.build({}, {"123": _project("123", "proj-a")})
        assert "111" in old.by_id
        assert "111" not in new.by_id


# --------------------------------------------------------- Snapshot loading
class TestLoadHierarchy:
    def setup_method(self):
        from tfdrift import hierarchy
        self.hierarchy = hierarchy

    def test_fixture_counts(self):
        folders, projects = self.hierarchy.load_hierarchy(os.path.join(FIXTURES, "hierarchy.yaml"))
        assert set(folders) == {"111", "222"}
        assert set(projects) == {"123", "456", "789"}

    def test_node_types_and_parents(self):
        folders, projects = self.hierarchy.load_hierarchy(os.path.join(FIXTURES, "hierarchy.yaml"))
        assert folders["111"] == HierarchyNode("111", "engineering", ResourceType.FOLDER, "1234567890")
        assert projects["123"].node_type == ResourceType.PROJECT
        assert projects["123"].parent_id == "111"

    def test_organization_not_included(self):
        folders, projects = self.hierarchy.load_hierarchy(os.path.join(FIXTURES, "hierarchy.yaml"))
        assert "1234567890" not in folders
        assert "1234567890" not in projects

    def test_json_snapshot(self, tmp_path):
        f = tmp_path / "h.json"
        f.write_text('{"folders": [{"id": 42, "name": "ops"}], "projects": []}')
        folders, projects = self.hierarchy.load_hierarchy(str(f))
        assert folders["42"].name == "ops"
        assert projects == {}

    def test_empty_file(self, tmp_path):
        f = tmp_path / "h.yaml"
        f.write_text("")
        assert self.hierarchy.load_hierarchy(str(f)) == ({}, {})

    def test_missing_file_raises(self):
        from tfdrift.errors import HierarchyError
        with pytest.raises(HierarchyError):
            self.hierarchy.load_hierarchy("/nonexistent/hierarchy.yaml")

    def test_entry_without_id_raises(self, tmp_path):
        from tfdrift.errors import HierarchyError
        f = tmp_path / "h.yaml"
        f.write_text("projects:\n  - name: orphan\n")
        with pytest.raises(HierarchyError, match="required"):
            self.hierarchy.load_hierarchy(str(f))

    def test_section_not_a_list_raises(self, tmp_path):
        from tfdrift.errors import HierarchyError
        f = tmp_path / "h.yaml"
        f.write_text("folders:\n  eng: 111\n")
        with pytest.raises(HierarchyError, match="must be a list"):
            self.hierarchy.load_hierarchy(str(f))

    def test_malformed_yaml_raises(self, tmp_path):
        from tfdrift.errors import HierarchyError
        f = tmp_path / "h.yaml"
        f.write_text("folders: [unclosed\n")
        with pytest.raises(HierarchyError, match="malformed"):
            self.hierarchy.load_hierarchy(str(f))
