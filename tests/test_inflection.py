"""Tests for resource naming conventions."""
import pytest

from app.core.inflection import ResourceNames, camelize, pluralize, singularize, underscore


class TestInflector:
    """Word inflections."""

    @pytest.mark.parametrize("word, expected", [
        ("Post", "post"),
        ("BlogPost", "blog_post"),
        ("HTMLPage", "html_page"),
        ("line-item", "line_item"),
    ])
    def test_underscore(self, word, expected):
        assert underscore(word) == expected

    def test_camelize(self):
        assert camelize("blog_post") == "BlogPost"

    @pytest.mark.parametrize("singular, plural", [
        ("post", "posts"),
        ("box", "boxes"),
        ("category", "categories"),
        ("day", "days"),
        ("status", "statuses"),
        ("person", "people"),
        ("wife", "wives"),
        ("half", "halves"),
        ("matrix", "matrices"),
        ("news", "news"),
        ("blog_post", "blog_posts"),
        ("line_person", "line_people"),
    ])
    def test_pluralize_and_singularize(self, singular, plural):
        assert pluralize(singular) == plural
        assert singularize(plural) == singular

    def test_singularize_leaves_singular_words(self):
        assert singularize("post") == "post"
        assert singularize("status") == "status"
        assert singularize("person") == "person"


class TestResourceNames:
    """Names derived from a resource name."""

    def test_from_class_name(self):
        names = ResourceNames.from_name("BlogPost")

        assert names.class_name == "BlogPost"
        assert names.file_name == "blog_post"
        assert names.table_name == "blog_posts"
        assert names.controller_class_name == "BlogPosts"
        assert names.route_prefix == "/blog_posts"
        assert names.template_dir == "blog_posts"
        assert names.human_name == "Blog post"

    def test_plural_input_is_singularized(self):
        assert ResourceNames.from_name("posts").class_name == "Post"

    def test_camel_case_class_name_is_kept(self):
        names = ResourceNames.from_name("HTTPRequest")

        assert names.class_name == "HTTPRequest"
        assert names.file_name == "http_request"
        assert names.model_module == "app.domain.http_request"

    def test_lower_case_name_is_camelized(self):
        assert ResourceNames.from_name("blog_post").class_name == "BlogPost"

    def test_namespaced(self):
        names = ResourceNames.from_name("Post", namespace="Admin::Reports")

        assert names.namespace == ("admin", "reports")
        assert names.ns_table_name == "admin_reports_posts"
        assert names.route_prefix == "/admin/reports/posts"
        assert names.model_module == "app.domain.admin.reports.post"
        assert names.controller_class_name == "AdminReportsPosts"

    def test_route_names(self):
        names = ResourceNames.from_name("Post", namespace="admin")

        assert [names.route_name(a) for a in names.actions] == [
            "admin_posts", "admin_post", "new_admin_post", "edit_admin_post",
            "create_admin_post", "update_admin_post", "destroy_admin_post",
        ]

    def test_singleton(self):
        names = ResourceNames.from_name("Profile", singleton=True)

        assert "index" not in names.actions
        assert names.route_prefix == "/profile"
        assert names.index_helper == "root"

    @pytest.mark.parametrize("name", ["", "9lives", "has space", "def"])
    def test_invalid_names(self, name):
        with pytest.raises(ValueError):
            ResourceNames.from_name(name)
