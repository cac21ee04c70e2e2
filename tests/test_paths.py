"""Tests for output path planning."""

import pytest

from picture_converter.paths import (
    build_post_asset_dir,
    build_post_cover_path,
    build_post_image_path,
    build_public_path,
    plan_outputs,
)
from picture_shared.files import PathEscape


class TestPlanOutputs:
    """Tests for plan_outputs."""

    def test_jpeg_siblings(self, options, output_dir):
        plan = plan_outputs("posts/foo/cover", "jpeg", options)

        assert plan.relative_dir == "posts/foo"
        assert plan.modern.relative_path == "posts/foo/cover.webp"
        assert plan.modern.mime_type == "image/webp"
        assert plan.modern.public_path == "/assets/posts/foo/cover.webp"
        assert plan.fallback.relative_path == "posts/foo/cover.jpg"
        assert plan.fallback.mime_type == "image/jpeg"
        assert plan.fallback.file_path == output_dir.resolve() / "posts/foo/cover.jpg"

    def test_png_strips_source_extension(self, options):
        plan = plan_outputs("remote/0123456789abcdef.png", "png", options)

        assert plan.modern.relative_path == "remote/0123456789abcdef.webp"
        assert plan.fallback.relative_path == "remote/0123456789abcdef.png"
        assert plan.fallback.mime_type == "image/png"

    def test_jpeg_extension_normalized(self, options):
        plan = plan_outputs("photos/sunset.JPEG", "jpeg", options)

        assert plan.fallback.relative_path == "photos/sunset.jpg"

    def test_top_level_file(self, options):
        plan = plan_outputs("cover.png", "png", options)

        assert plan.relative_dir == ""
        assert plan.modern.relative_path == "cover.webp"

    def test_windows_separators(self, options):
        plan = plan_outputs("posts\\foo\\image_1", "jpeg", options)

        assert plan.modern.relative_path == "posts/foo/image_1.webp"

    def test_no_public_base(self, options):
        plan = plan_outputs("posts/foo/cover", "jpeg", options.replace(public_base=None))

        assert plan.modern.public_path is None
        assert plan.fallback.public_path is None

    def test_escaping_output_base(self, options):
        with pytest.raises(PathEscape):
            plan_outputs("../../etc/cover", "jpeg", options)


class TestPathHelpers:
    """Tests for layout helpers shared with page generation."""

    def test_build_public_path(self):
        assert build_public_path("/assets", "posts/a/cover.webp") == "/assets/posts/a/cover.webp"
        assert build_public_path("https://cdn.test/img", "a.png") == "https://cdn.test/img/a.png"
        assert build_public_path(None, "a.png") is None

    def test_post_asset_paths(self):
        assert build_post_asset_dir("hello-world", "en") == "posts/hello-world/en"
        assert build_post_asset_dir("hello-world", None, "zh") == "posts/hello-world/zh"
        assert build_post_asset_dir("hello-world") == "posts/hello-world/unknown"
        assert build_post_cover_path("hello-world", "en") == "posts/hello-world/en/cover"
        assert build_post_image_path("hello-world", 2, "en") == "posts/hello-world/en/image_2"
