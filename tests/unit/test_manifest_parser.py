"""Unit tests for manifest stream parsing."""

import pytest

from picoclaw_manager.k8s.manifest import parse_manifest_stream, split_documents
from picoclaw_manager.k8s.types import GroupVersionKind, ResourceMapping, ResourceScope
from picoclaw_manager.utils.exceptions import ManifestParseError

NAMESPACE_DOC = """apiVersion: v1
kind: Namespace
metadata:
  name: demo
"""

DEPLOYMENT_DOC = """apiVersion: apps/v1
kind: Deployment
metadata:
  name: web
  namespace: demo
spec:
  replicas: 2
"""


class TestSplitDocuments:
    """Tests for split_documents."""

    def test_splits_on_separator_lines(self):
        docs = split_documents(NAMESPACE_DOC + "---\n" + DEPLOYMENT_DOC)
        assert len(docs) == 2
        assert docs[0].startswith("apiVersion: v1")
        assert docs[1].startswith("apiVersion: apps/v1")

    def test_drops_empty_documents(self):
        stream = "---\n\n---\n" + NAMESPACE_DOC + "---\n   \n---\n"
        assert split_documents(stream) == [NAMESPACE_DOC.strip()]

    def test_separator_with_trailing_comment(self):
        docs = split_documents(NAMESPACE_DOC + "--- # next\n" + DEPLOYMENT_DOC)
        assert len(docs) == 2

    def test_content_after_separator_raises(self):
        with pytest.raises(ManifestParseError, match="Line 1"):
            split_documents("--- {apiVersion: v1, kind: Namespace, metadata: {name: x}}\n")

    def test_separator_with_trailing_whitespace(self):
        docs = split_documents(NAMESPACE_DOC + "---   \n" + DEPLOYMENT_DOC)
        assert len(docs) == 2

    def test_dashes_inside_values_do_not_split(self):
        stream = "apiVersion: v1\nkind: ConfigMap\ndata:\n  x: a---b\n"
        assert len(split_documents(stream)) == 1

    def test_accepts_bytes(self):
        assert split_documents(NAMESPACE_DOC.encode()) == [NAMESPACE_DOC.strip()]

    def test_invalid_utf8_raises(self):
        with pytest.raises(ManifestParseError):
            split_documents(b"\xff\xfe kind: x")


class TestParseManifestStream:
    """Tests for parse_manifest_stream."""

    def test_parses_documents_in_order(self):
        docs = parse_manifest_stream(NAMESPACE_DOC + "---\n" + DEPLOYMENT_DOC)

        assert [d.kind for d in docs] == ["Namespace", "Deployment"]
        assert docs[0].namespace == ""
        assert docs[1].namespace == "demo"
        assert docs[1].name == "web"
        assert docs[1].body["spec"]["replicas"] == 2

    def test_empty_kind_documents_are_skipped(self):
        stream = "\n---\n".join([
            NAMESPACE_DOC,
            "apiVersion: v1\nmetadata:\n  name: nokind\n",
            "apiVersion: v1\nkind: ''\nmetadata:\n  name: blank\n",
            DEPLOYMENT_DOC,
        ])
        docs = parse_manifest_stream(stream)
        assert [d.name for d in docs] == ["demo", "web"]

    def test_comment_only_document_is_skipped(self):
        docs = parse_manifest_stream("# just a comment\n---\n" + NAMESPACE_DOC)
        assert len(docs) == 1

    def test_non_mapping_document_raises(self):
        with pytest.raises(ManifestParseError, match="mapping"):
            parse_manifest_stream("- a\n- b\n")

    def test_invalid_yaml_raises(self):
        with pytest.raises(ManifestParseError):
            parse_manifest_stream("kind: [unclosed\n")

    def test_unquoted_timestamps_stay_strings(self):
        docs = parse_manifest_stream(
            "apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: c\n"
            "data:\n  released: 2024-01-01\n  at: 2024-01-01T10:00:00Z\n"
        )
        assert docs[0].body["data"] == {"released": "2024-01-01", "at": "2024-01-01T10:00:00Z"}

    def test_binary_value_raises(self):
        with pytest.raises(ManifestParseError, match="JSON"):
            parse_manifest_stream(
                "apiVersion: v1\nkind: Secret\nmetadata:\n  name: s\ndata:\n  key: !!binary aGVsbG8=\n"
            )

    def test_gvk_of_document(self):
        doc = parse_manifest_stream(DEPLOYMENT_DOC)[0]
        assert doc.gvk == GroupVersionKind("apps", "v1", "Deployment")


class TestGroupVersionKind:
    def test_core_group(self):
        gvk = GroupVersionKind.from_api_version("v1", "ConfigMap")
        assert gvk.group == ""
        assert gvk.version == "v1"
        assert gvk.group_version == "v1"

    def test_named_group(self):
        gvk = GroupVersionKind.from_api_version("rbac.authorization.k8s.io/v1", "Role")
        assert gvk.group == "rbac.authorization.k8s.io"
        assert gvk.group_version == "rbac.authorization.k8s.io/v1"


class TestResourceMappingPath:
    def test_cluster_scoped_core(self):
        mapping = ResourceMapping(
            GroupVersionKind("", "v1", "Namespace"), "namespaces", ResourceScope.CLUSTER
        )
        assert mapping.path("demo", "ignored") == "/api/v1/namespaces/demo"

    def test_namespaced_group(self):
        mapping = ResourceMapping(
            GroupVersionKind("apps", "v1", "Deployment"), "deployments", ResourceScope.NAMESPACED
        )
        assert mapping.path("web", "demo") == "/apis/apps/v1/namespaces/demo/deployments/web"
