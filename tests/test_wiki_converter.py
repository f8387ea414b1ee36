"""Tests for Trac wiki markup to Markdown translation."""

import unittest

from trac_github_migrator.converters import TracWikiConverter, translate


class TestCodeConversion(unittest.TestCase):
    def setUp(self):
        self.converter = TracWikiConverter()

    def test_inline_code(self):
        """Single line {{{...}}} becomes a backtick span."""
        self.assertEqual(self.converter.convert('run {{{make all}}} first'), 'run `make all` first')

    def test_code_block_with_processor(self):
        """A #!lang processor line becomes the fence info string."""
        text = "{{{\n#!python\nprint('hi')\n}}}"
        self.assertEqual(self.converter.convert(text), "```python\nprint('hi')\n```")

    def test_code_block_without_processor(self):
        text = "{{{\nline one\nline two\n}}}"
        self.assertEqual(self.converter.convert(text), "```\nline one\nline two\n```")

    def test_code_block_after_text_starts_on_new_line(self):
        text = "see: {{{\nx = 1\n}}}"
        self.assertEqual(self.converter.convert(text), "see: \n```\nx = 1\n```")

    def test_markup_inside_code_is_untouched(self):
        """Font, revision and ticket rules skip code blocks and spans."""
        text = "{{{\n'''not bold''' r12 ticket:3\n}}}\nand {{{''x''}}}"
        result = self.converter.convert(text)

        self.assertIn("'''not bold''' r12 ticket:3", result)
        self.assertIn("`''x''`", result)
        self.assertNotIn('changeset', result)

    def test_commit_ticket_reference_unwrapped(self):
        """CommitTicketUpdater blocks become plain text."""
        text = (
            'In [1234]:\n'
            '{{{\n'
            '#!CommitTicketReference repository="" revision="1234"\n'
            'Fix the parser\n'
            '}}}'
        )
        result = self.converter.convert(text)

        self.assertIn('Fix the parser', result)
        self.assertNotIn('CommitTicketReference', result)
        self.assertNotIn('```', result)

    def test_crlf_line_endings(self):
        text = "{{{\r\n#!sh\r\nls\r\n}}}"
        self.assertEqual(self.converter.convert(text), "```sh\nls\n```")


class TestProseConversion(unittest.TestCase):
    def setUp(self):
        self.converter = TracWikiConverter()

    def test_headings(self):
        text = "= One =\n== Two ==\n=== Three ===\n==== Four ===="
        self.assertEqual(self.converter.convert(text), "# One\n## Two\n### Three\n#### Four")

    def test_heading_with_anchor(self):
        self.assertEqual(self.converter.convert('== Install == #install'), '## Install')

    def test_equals_inside_sentence_is_not_heading(self):
        text = 'set a = b = c'
        self.assertEqual(self.converter.convert(text), text)

    def test_bold_and_italic(self):
        result = self.converter.convert("'''bold''' and ''italic''")
        self.assertEqual(result, '**bold** and *italic*')

    def test_slash_italic(self):
        self.assertEqual(self.converter.convert('//really// important'), '_really_ important')

    def test_url_is_not_italic(self):
        text = 'see http://example.com/a//b for details'
        self.assertEqual(self.converter.convert(text), text)

    def test_labelled_link(self):
        result = self.converter.convert('[https://trac.edgewall.org Trac home]')
        self.assertEqual(result, '[Trac home](https://trac.edgewall.org)')

    def test_camelcase_escape_removed(self):
        self.assertEqual(self.converter.convert('the !WikiStart page'), 'the WikiStart page')

    def test_bullets(self):
        text = " * first\n * second\n   * nested"
        self.assertEqual(self.converter.convert(text), " - first\n - second\n   - nested")

    def test_numbered_list_kept(self):
        text = " 1. first\n 2. second"
        self.assertEqual(self.converter.convert(text), text)

    def test_star_after_inline_code_is_not_bullet(self):
        text = 'compute {{{a}}} * b here'
        self.assertEqual(self.converter.convert(text), 'compute `a` * b here')

    def test_equals_after_inline_code_is_not_heading(self):
        text = 'if {{{x}}} = y = z'
        self.assertEqual(self.converter.convert(text), 'if `x` = y = z')

    def test_bullet_starting_with_inline_code(self):
        self.assertEqual(self.converter.convert(' * {{{cfg}}} 1. option'), ' - `cfg` 1. option')

    def test_bold_at_line_start_is_not_bullet(self):
        self.assertEqual(self.converter.convert("  '''note''' here"), '  **note** here')

    def test_ticket_reference(self):
        self.assertEqual(self.converter.convert('duplicate of ticket:42'), 'duplicate of #42')

    def test_empty_input(self):
        self.assertEqual(self.converter.convert(''), '')
        self.assertEqual(self.converter.convert(None), '')


class TestRevisionLinks(unittest.TestCase):
    def setUp(self):
        self.revision_map = {'123': 'abcdef0123456789'}
        self.converter = TracWikiConverter(self.revision_map)

    def test_mapped_revision_token(self):
        result = self.converter.convert('fixed in r123')
        self.assertEqual(result, 'fixed in [abcdef0](../commit/abcdef0123456789)')

    def test_unmapped_revision_token(self):
        self.assertEqual(TracWikiConverter().convert('fixed in r123'), 'fixed in [changeset:123]')

    def test_changeset_forms(self):
        result = self.converter.convert('[changeset:123] [changeset:r123] [changeset:"123" ok]')
        link = '[abcdef0](../commit/abcdef0123456789)'
        self.assertEqual(result, f'{link} {link} {link}')

    def test_changeset_url(self):
        result = self.converter.convert('see https://trac.example.org/changeset/123/trunk')
        self.assertEqual(result, 'see [abcdef0](../commit/abcdef0123456789)')

    def test_unmapped_changeset_url(self):
        result = self.converter.convert('see https://trac.example.org/changeset/77')
        self.assertEqual(result, 'see [changeset:77]')

    def test_word_with_digits_is_not_revision(self):
        text = 'upgrade to for123 and r2d2'
        self.assertEqual(self.converter.convert(text), text)

    def test_custom_commit_url_base(self):
        converter = TracWikiConverter(self.revision_map, commit_url_base='https://github.com/o/r/commit/')
        self.assertEqual(
            converter.convert('r123'),
            '[abcdef0](https://github.com/o/r/commit/abcdef0123456789)'
        )


class TestQuoting(unittest.TestCase):
    def test_every_line_quoted(self):
        self.assertEqual(translate('one\n\ntwo'), '> one\n>\n> two')

    def test_empty_document(self):
        self.assertEqual(translate(''), '>')
        self.assertEqual(translate('   \n  '), '>')

    def test_trailing_newlines_dropped(self):
        self.assertEqual(translate('text\n\n'), '> text')

    def test_module_translate_uses_revision_map(self):
        self.assertEqual(translate('r5', {'5': 'ffff0000aaaa'}), '> [ffff000](../commit/ffff0000aaaa)')


class TestIdempotence(unittest.TestCase):
    """Converting already converted output changes nothing further."""

    def setUp(self):
        self.converter = TracWikiConverter({'9': 'deadbeefcafe'})

    def assertStable(self, text):
        once = self.converter.convert(text)
        self.assertEqual(self.converter.convert(once), once)

    def test_headings_stable(self):
        self.assertStable('= Top =\n== Section ==\n==== Deep ====')

    def test_font_styles_stable(self):
        self.assertStable("'''bold''' ''italic'' //slanted//")

    def test_bullets_stable(self):
        self.assertStable(' * one\n * two\n 1. three')

    def test_revisions_stable(self):
        self.assertStable('r9 and r10 and [changeset:"9"]')


if __name__ == '__main__':
    unittest.main()
