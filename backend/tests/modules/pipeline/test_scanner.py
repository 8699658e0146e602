"""Tests for resource reference scanning and naming."""

from yuque_mirror.modules.pipeline import AttachmentReferenceScanner, ImageReferenceScanner
from yuque_mirror.modules.pipeline.naming import (
    attachment_original_name,
    image_extension,
    image_filename,
    unique_filename,
)
from yuque_mirror.modules.pipeline.scanner import is_attachment_url, is_image_url
from yuque_mirror.modules.resource.schemas import ResourceType

CDN_IMAGE = "https://cdn.nlark.com/yuque/0/2024/png/2193/1700000000000-abc.png"
ATTACHMENT = "https://www.yuque.com/attachments/yuque/0/2024/pdf/2193/1700000000000-def.pdf"


class TestUrlClassification:
    def test_image_by_extension(self):
        assert is_image_url("https://example.com/a/b/photo.JPG") is True

    def test_image_by_cdn_layout(self):
        assert is_image_url("https://cdn.nlark.com/yuque/0/2024/image/1/abc") is True
        assert is_image_url("https://cdn.yuque.com/abc?x-oss-process=image/resize") is True

    def test_not_images(self):
        assert is_image_url("https://example.com/readme") is False
        assert is_image_url("assets/local.png") is False
        assert is_image_url("") is False

    def test_attachments(self):
        assert is_attachment_url(ATTACHMENT) is True
        assert is_attachment_url("https://cdn.nlark.com/yuque/__puml/abc.svg") is False
        assert is_attachment_url("https://example.com/attachments/file.pdf") is False
        assert is_attachment_url("https://www.yuque.com/alice/handbook/intro") is False


class TestImageReferenceScanner:
    def setup_method(self):
        self.scanner = ImageReferenceScanner(timeout=5)

    def test_extracts_distinct_images_in_order(self):
        content = (
            f"![one]({CDN_IMAGE})\n"
            '<img src="https://example.com/two.gif" width="10">\n'
            f"again ![]({CDN_IMAGE} \"title\")\n"
            "[not an image](https://example.com/page)\n"
        )

        references = self.scanner.extract(content)

        assert [reference.url for reference in references] == [CDN_IMAGE, "https://example.com/two.gif"]
        assert all(reference.resource_type == ResourceType.IMAGE for reference in references)

    def test_bare_cdn_urls_are_found(self):
        references = self.scanner.extract(f"see {CDN_IMAGE} for details")
        assert [reference.url for reference in references] == [CDN_IMAGE]

    def test_rewrite_replaces_every_occurrence(self):
        content = f"![a]({CDN_IMAGE})\n<img src=\"{CDN_IMAGE}\">"

        rewritten = self.scanner.rewrite(content, {CDN_IMAGE: "assets/abc.png"})

        assert rewritten == '![a](assets/abc.png)\n<img src="assets/abc.png">'

    def test_rewrite_does_not_touch_longer_urls(self):
        short = "https://example.com/a.png"
        longer = "https://example.com/a.png?version=2"
        content = f"![]({short}) ![]({longer})"

        rewritten = self.scanner.rewrite(content, {short: "assets/short.png"})

        assert rewritten == f"![](assets/short.png) ![]({longer})"

    def test_unmapped_urls_are_left_alone(self):
        content = f"![a]({CDN_IMAGE})"
        assert self.scanner.rewrite(content, {}) == content


class TestAttachmentReferenceScanner:
    def setup_method(self):
        self.scanner = AttachmentReferenceScanner(timeout=5, max_bytes=1024)

    def test_extracts_links_with_display_text(self):
        content = f"Download [Quarterly report]({ATTACHMENT}) now. ![pic]({CDN_IMAGE})"

        references = self.scanner.extract(content)

        assert len(references) == 1
        assert references[0].url == ATTACHMENT
        assert references[0].display_text == "Quarterly report"
        assert references[0].resource_type == ResourceType.ATTACHMENT

    def test_rewrite_only_inside_links(self):
        content = f"[report]({ATTACHMENT})\nRaw: {ATTACHMENT}"

        rewritten = self.scanner.rewrite(content, {ATTACHMENT: "attachments/report.pdf"})

        assert rewritten == f"[report](attachments/report.pdf)\nRaw: {ATTACHMENT}"


class TestNaming:
    def test_image_extension(self):
        assert image_extension("https://x.com/a/b.jpeg?x=1") == ".jpeg"
        assert image_extension("https://x.com/a/b") == ".png"

    def test_image_filename_is_stable_and_unique(self):
        first = image_filename(CDN_IMAGE, set())
        assert first == image_filename(CDN_IMAGE, set())
        assert len(first) == len("0123456789ab.png")

        second = image_filename(CDN_IMAGE, {first})
        assert second == first.replace(".png", "_1.png")

    def test_attachment_original_name(self):
        assert attachment_original_name(ATTACHMENT) == "1700000000000-def.pdf"
        assert attachment_original_name("https://www.yuque.com/attachments/x?filename=plan.docx") == "plan.docx"
        assert attachment_original_name("https://www.yuque.com/attachments/x", "Budget: 2024") == "Budget_ 2024"
        assert attachment_original_name("https://www.yuque.com/attachments/x") == "attachment"

    def test_unique_filename(self):
        assert unique_filename("report.pdf", set()) == "report.pdf"
        assert unique_filename("report.pdf", {"report.pdf"}) == "report_1.pdf"
        assert unique_filename("report.pdf", {"report.pdf", "report_1.pdf"}) == "report_2.pdf"
        assert unique_filename("README", {"README"}) == "README_1"
