"""Tests for the report template engine and the bundled templates."""

import sys
import threading
import time
from pathlib import Path

import pytest
from jinja2 import DictLoader

# Add backend directory to path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from config import DEFAULT_TEMPLATE_DIR  # noqa: E402
from reports.engine import TemplateSet, template_file  # noqa: E402
from utils.errors import TemplateInitError, TemplateRenderError  # noqa: E402


def test_template_file():
    assert template_file("hosts") == "hosts.j2"
    assert template_file("hosts.j2") == "hosts.j2.j2"


def test_requires_directory_or_loader():
    with pytest.raises(ValueError):
        TemplateSet()


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------


class TestInitialization:
    """Tests for lazy, once-only template discovery."""

    def test_pending_until_first_use(self, template_dir):
        templates = TemplateSet(template_dir)

        assert templates.status == "pending"
        templates.ensure_ready()
        assert templates.status == "ok"
        assert sorted(templates.templates) == ["node", "nodes", "summary"]

    def test_ignores_other_files(self, template_dir):
        (template_dir / "README.txt").write_text("{% broken")
        templates = TemplateSet(template_dir)

        templates.ensure_ready()

        assert "README" not in templates.templates

    def test_empty_directory_fails(self, tmp_path):
        templates = TemplateSet(tmp_path, name="empty")

        with pytest.raises(TemplateInitError, match="no .j2 templates found for registry 'empty'"):
            templates.ensure_ready()
        assert templates.status.startswith("error: ")

    def test_parse_error_names_template(self, template_dir):
        (template_dir / "broken.j2").write_text("{% for x in %}\n")

        with pytest.raises(TemplateInitError, match="failed to parse template 'broken.j2'"):
            TemplateSet(template_dir).ensure_ready()

    def test_failure_is_sticky(self, tmp_path):
        templates = TemplateSet(tmp_path)
        with pytest.raises(TemplateInitError) as first:
            templates.ensure_ready()

        (tmp_path / "late.j2").write_text("late\n")

        with pytest.raises(TemplateInitError) as second:
            templates.ensure_ready()
        with pytest.raises(TemplateInitError):
            templates.render("late", {})
        assert second.value is first.value

    def test_new_instance_retries(self, tmp_path):
        with pytest.raises(TemplateInitError):
            TemplateSet(tmp_path).ensure_ready()

        (tmp_path / "late.j2").write_text("late\n")

        assert TemplateSet(tmp_path).render("late", {}) == "late\n"

    def test_builds_once_under_concurrency(self, template_dir):
        templates = TemplateSet(template_dir)
        real_build = templates._build
        calls = []

        def slow_build():
            calls.append(1)
            time.sleep(0.05)
            return real_build()

        templates._build = slow_build
        barrier = threading.Barrier(8)
        errors = []

        def worker():
            barrier.wait()
            try:
                templates.ensure_ready()
            except Exception as exc:  # pragma: no cover
                errors.append(exc)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert calls == [1]
        assert errors == []
        assert templates.status == "ok"


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


class TestRender:
    """Tests for TemplateSet.render and include."""

    def test_render_with_include_and_cidr_helpers(self, template_dir, report_data):
        templates = TemplateSet(template_dir)

        assert templates.render("nodes", report_data) == (
            "[node-1 10.0.0.11/255.255.255.0]\n"
            "[node-2 10.0.0.12/255.255.255.0]\n"
        )

    def test_render_is_repeatable(self, template_dir, report_data):
        templates = TemplateSet(template_dir)

        first = templates.render("summary", report_data)
        second = templates.render("summary", report_data)

        assert first == second == "zone z1: 1 clusters\n"

    def test_non_mapping_data_is_available_as_data(self):
        templates = TemplateSet(loader=DictLoader({"items.j2": "{{ join(',', data) }}"}))

        assert templates.render("items", ["a", "b"]) == "a,b"

    def test_missing_template(self, template_dir):
        with pytest.raises(TemplateRenderError) as exc_info:
            TemplateSet(template_dir).render("nope", {})

        assert exc_info.value.message == "failed to execute template 'nope': template not found"
        assert exc_info.value.template == "nope"

    def test_name_with_suffix_is_not_a_report(self, template_dir):
        templates = TemplateSet(template_dir)

        with pytest.raises(TemplateRenderError, match="failed to execute template 'summary.j2': template not found"):
            templates.render("summary.j2", {"zones": []})

    def test_missing_included_template(self):
        templates = TemplateSet(loader=DictLoader({"outer.j2": "{{ include('inner', data) }}"}))

        with pytest.raises(TemplateRenderError) as exc_info:
            templates.render("outer", {})

        assert exc_info.value.template == "outer"
        assert exc_info.value.message == (
            "failed to execute template 'outer': failed to execute template 'inner': template not found"
        )

    def test_undefined_variable_fails(self):
        templates = TemplateSet(loader=DictLoader({"strict.j2": "{{ nothing }}"}))

        with pytest.raises(TemplateRenderError, match="failed to execute template 'strict'"):
            templates.render("strict", {})

    def test_helper_error_fails_render(self, template_dir):
        with pytest.raises(TemplateRenderError, match="failed to parse CIDR 'bogus'"):
            TemplateSet(template_dir).render("node", {"name": "n", "interfaces": [{"cidr": "bogus"}]})

    def test_sandbox_blocks_internals(self):
        templates = TemplateSet(loader=DictLoader({"escape.j2": "{{ data.__class__.__mro__ }}"}))

        with pytest.raises(TemplateRenderError):
            templates.render("escape", "x")

    def test_no_html_escaping(self):
        templates = TemplateSet(loader=DictLoader({"raw.j2": "{{ data }}"}))

        assert templates.render("raw", "<a & b>") == "<a & b>"

    def test_include_depth_limit(self):
        templates = TemplateSet(
            loader=DictLoader({"loop.j2": "{{ include('loop', data) }}"}),
            max_include_depth=3,
        )

        with pytest.raises(TemplateRenderError, match="include depth limit of 3 exceeded at template 'loop'"):
            templates.render("loop", {})

    def test_include_depth_within_limit(self):
        templates = TemplateSet(
            loader=DictLoader(
                {
                    "a.j2": "a({{ include('b', data) }})",
                    "b.j2": "b({{ include('c', data) }})",
                    "c.j2": "c",
                }
            ),
            max_include_depth=2,
        )

        assert templates.render("a", {}) == "a(b(c))"


# ---------------------------------------------------------------------------
# Bundled templates
# ---------------------------------------------------------------------------


class TestBundledTemplates:
    """Tests for the templates shipped in reports/templates."""

    @pytest.fixture
    def templates(self):
        return TemplateSet(DEFAULT_TEMPLATE_DIR)

    def test_available(self, templates):
        templates.ensure_ready()

        assert sorted(templates.templates) == ["dhcpd", "host", "hosts", "summary"]

    def test_summary(self, templates, report_data):
        assert templates.render("summary", report_data) == "zone z1: 1 cluster\n  cluster c1: 2 hosts\n"

    def test_hosts(self, templates, report_data):
        assert templates.render("hosts", report_data) == (
            "# /etc/hosts generated by mops\n"
            "127.0.0.1\tlocalhost\n"
            "10.0.0.11\tnode-1\n"
            "10.1.0.11\tnode-1-ib0\n"
            "10.0.0.12\tnode-2\n"
        )

    def test_dhcpd(self, templates, report_data):
        assert templates.render("dhcpd", report_data) == (
            "# dhcpd.conf generated by mops\n"
            "host node-1-eth0 {\n"
            "  hardware ethernet aa:bb:cc:00:00:01;\n"
            "  fixed-address 10.0.0.11;\n"
            "  option subnet-mask 255.255.255.0;\n"
            "}\n"
            "host node-2-eth0 {\n"
            "  hardware ethernet aa:bb:cc:00:00:02;\n"
            "  fixed-address 10.0.0.12;\n"
            "  option subnet-mask 255.255.255.0;\n"
            "}\n"
        )

    def test_empty_document(self, templates):
        assert templates.render("hosts", {"zones": []}) == "# /etc/hosts generated by mops\n127.0.0.1\tlocalhost\n"
