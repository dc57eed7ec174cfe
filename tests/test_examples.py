import re

import pytest

import html2draft.core as core


JOURNAL_PLAIN_TEXT = """Hey SW,
I was the target of a hack attack so have been awol while I dealt with that.

Wow is right!  Good for you - so this is someone giving you feedback that you can trust.

I am really very happy for you.

xxxxxxxxx"""

MESSAGE_DOUBLED_QUOTES = """<p>Hello thewife,</p>
<p>Thewife, we think you have raised some important issues here, which we think would really be worth to post in a <a href=""https://www.bigwhitewall.com/talkabouts/post/"">community talkabout</a>, so more help and support can come to you.</p>
<p>Best wishes,<br />WG</p>"""

NOTES_RELATIVE_LINKS = """ <p>Hi Fleur and Mo</p> <p>&nbsp;</p> <p>Janet</p> <p>&nbsp;</p> <p><strong>Risk: </strong></p> <p><a href=""../159836/""><strong>Escalation GTA</strong></a></p> <p>&nbsp;</p> <p><a href=""../431115/""><span>Ne15</span></a><span>&nbsp;posted a CTA called &quot;Self-Harm&quot;.</span></p> <p><span>&nbsp;</span></p> <p><strong>To Dos: </strong></p> <p><a href=""../432148/"">WalksT2s</a> I completed a course with minds matter</p> <p><a href=""../432011/#Comment1295781"">Care1st</a> username change</p> <p><a href=""../427943/welcome/#Comment1295906"">Coe</a> ex is texting</p> <p>&nbsp;</p> """

STYLED_PARAGRAPHS = """<p style=""line-height: 1.38; margin-top: 0pt;""><span style=""font-size: 12pt; font-family: Arial;"">Dear Anonymous, </span></p>
<p style=""line-height: 1.38; margin-top: 0pt;"">&nbsp;</p>
<p style=""line-height: 1.38; margin-top: 0pt;""><span style=""font-size: 12pt;"">Warm wishes,</span></p>
<p style=""line-height: 1.38; margin-top: 0pt;""><span style=""font-size: 12pt;"">WG</span></p>
<p>&nbsp;</p>"""

MODERATION_NOTE = """Removed ""other than to grab the wheel and purposfully crash to end it"" and ""it feels like I should grab that wheel and crash the car""
from post: https://www.bigwhitewall.com/talkabouts/thread/253296/"""

WELCOME_MESSAGE = """<p>Hello anon878974</p>
<h2>Talk to me</h2>
<p>If you are not quite ready to talk with others is there anything that you would like to share or ask me here? <a href='#ctl00_MainColumn_ReplyButton2'>Post a reply</a> below.</p>
<h2>Learn more about you</h2>
<p>You can find links to some of the things you can do, like
<a href='/self-assessment/'>Take a Test</a>
to see how you score.</p>
<h2>Stay safe</h2>
<p>Please <a href='/info/keep-safe.aspx' target='_blank'>keep your identity safe</a> in the Community.</p>
<p>Take care</p>
"""

QUESTIONNAIRE_REQUEST = """Dear Big White Wall Member. <BR />We would kindly request that you fill in the following <a href=""https://www.bigwhitewall.com/self-assessment/take-assessment/Impact-Of-Events-Scale/"">questionnaire</a>, so that we get feedback. <BR />Many thanks <BR />Big White Wall"""

FORWARDED_EMAIL = """<p><span style=""background-color: rgba(255, 255, 255, 0);"">Daytime is therefore fine.<br /><br />Thanks.<br /><br />Sent from my iPhone<br /><br /></span></p>
<blockquote><span style=""background-color: rgba(255, 255, 255, 0);"">On 5 Jun 2014, at 15:10, Big White Wall &lt;<a href=""mailto:theteam@bigwhitewall.com"">theteam@bigwhitewall.com</a>&gt; wrote:<br /></span></blockquote>
<blockquote><span style=""background-color: rgba(255, 255, 255, 0);"">&nbsp;</span></blockquote>
<blockquote><span style=""background-color: rgba(255, 255, 255, 0);"">Hi northern0278,&nbsp;<br /></span></blockquote>
<blockquote><span style=""background-color: rgba(255, 255, 255, 0);"">Hello John,&amp;nbsp;&lt;/p&gt;<br /></span></blockquote>
<blockquote><span style=""background-color: rgba(255, 255, 255, 0);"">&lt;p&gt;Kind regards&lt;/p&gt;<br /></span></blockquote>"""

FORUM_POST_WITH_TABLE = """<p>Hello El Mariachi, glad to see you around again.</p><span style=\"font-size: 11pt\">Ask yourself these questions</span><strong><span style=\"font-size: 10pt\">Alcohol Use AUDIT</span></strong><span></span> <table border=\"1\" class=\"MsoNormalTable\"><tbody><tr><td><p class=\"MsoNormal\"><span>1. How often do you have a drink containing alcohol?</span></p></td><td><span>Never</span></td></tr></tbody></table><a name=\"_Toc120367226\"></a><span>Scoring</span> <ul><li class=\"MsoNormal\"><span>Questions 1 to 8 scores are from left to right.</span><span></span></li><li class=\"MsoNormal\"><span>Questions 9 and 10 scores from left to right.</span></li></ul><p>Do take care. ((hugs)) -Mebenji</p>"""

ALL_SAMPLES = [
    JOURNAL_PLAIN_TEXT,
    MESSAGE_DOUBLED_QUOTES,
    NOTES_RELATIVE_LINKS,
    STYLED_PARAGRAPHS,
    MODERATION_NOTE,
    WELCOME_MESSAGE,
    QUESTIONNAIRE_REQUEST,
    FORWARDED_EMAIL,
    FORUM_POST_WITH_TABLE,
]

ALLOWED_TAG_RE = re.compile(r"</?(?:p|a|img|ol|ul|li|br)\b")
ANY_TAG_RE = re.compile(r"</?[A-Za-z][^>]*>")


@pytest.mark.parametrize("sample", ALL_SAMPLES)
def test_samples_produce_restricted_vocabulary(sample):
    out = core.convert(sample)
    assert out.startswith("<p>")
    assert out.endswith("</p>")
    assert "\n" not in out
    assert "<p><p>" not in out
    assert "</p></p>" not in out
    for tag in ANY_TAG_RE.findall(out):
        assert ALLOWED_TAG_RE.match(tag), tag


@pytest.mark.parametrize("sample", ALL_SAMPLES)
def test_samples_are_stable_under_renormalization(sample):
    out = core.convert(sample)
    assert core.normalize_output(out) == out


def test_plain_text_journal_entry():
    out = core.convert(JOURNAL_PLAIN_TEXT)
    assert out.startswith("<p>Hey SW,<br />I was the target of a hack attack")
    assert out.endswith("very happy for you.<br /><br />xxxxxxxxx</p>")


def test_message_with_doubled_quotes():
    out = core.convert(MESSAGE_DOUBLED_QUOTES)
    assert out.startswith("<p>Hello thewife,</p><p>Thewife, we think")
    assert '<a href="https://www.bigwhitewall.com/talkabouts/post/">community talkabout</a>' in out
    assert out.endswith("<p>Best wishes,<br />WG</p>")


def test_notes_relative_links_are_absolute():
    out = core.convert(NOTES_RELATIVE_LINKS)
    assert '<a href="https://www.bigwhitewall.com/talkabouts/thread/159836/">Escalation GTA</a>' in out
    assert '<a href="https://www.bigwhitewall.com/talkabouts/thread/431115/">Ne15</a>' in out
    assert (
        '<p><a href="https://www.bigwhitewall.com/talkabouts/thread/432148/">WalksT2s</a>'
        " I completed a course with minds matter</p>"
    ) in out
    assert '<a href="https://www.bigwhitewall.com/talkabouts/thread/432011/#Comment1295781">Care1st</a>' in out
    assert '<a href="https://www.bigwhitewall.com/talkabouts/thread/427943/welcome/#Comment1295906">Coe</a>' in out
    assert out.startswith("<p>Hi Fleur and Mo</p><p>Janet</p>")
    assert "<strong>" not in out
    assert "<span>" not in out


def test_styled_paragraphs_lose_styles_and_blank_paragraphs():
    assert core.convert(STYLED_PARAGRAPHS) == "<p>Dear Anonymous,</p><p>Warm wishes,</p><p>WG</p>"


def test_moderation_note_keeps_doubled_quotes_in_text():
    assert core.convert(MODERATION_NOTE) == (
        '<p>Removed ""other than to grab the wheel and purposfully crash to end it"" and '
        '""it feels like I should grab that wheel and crash the car""'
        "<br />from post: https://www.bigwhitewall.com/talkabouts/thread/253296/</p>"
    )


def test_welcome_message_headings_and_site_links():
    out = core.convert(WELCOME_MESSAGE)
    assert "<p>Talk to me</p>" in out
    assert '<a href="#ctl00_MainColumn_ReplyButton2">Post a reply</a>' in out
    assert '<a href="/self-assessment/">Take a Test</a>' in out
    assert '<a href="/info/keep-safe.aspx">keep your identity safe</a>' in out
    assert "target=" not in out
    assert out.endswith("<p>Take care</p>")


def test_questionnaire_request_keeps_breaks():
    out = core.convert(QUESTIONNAIRE_REQUEST)
    assert out.startswith("<p>Dear Big White Wall Member. <br />We would kindly request")
    assert (
        '<a href="https://www.bigwhitewall.com/self-assessment/take-assessment/Impact-Of-Events-Scale/">'
        "questionnaire</a>"
    ) in out
    assert out.endswith("Many thanks <br />Big White Wall</p>")


def test_forwarded_email_quotes_become_paragraphs():
    out = core.convert(FORWARDED_EMAIL)
    assert out.startswith("<p>Daytime is therefore fine.<br /><br />Thanks.<br /><br />Sent from my iPhone</p>")
    assert (
        '&lt;<a href="mailto:theteam@bigwhitewall.com">theteam@bigwhitewall.com</a>&gt; wrote:</p>'
    ) in out
    assert "<p>Hi northern0278,</p>" in out
    assert "<p>Hello John,&amp;nbsp;</p>" in out
    assert out.endswith("<p>Kind regards</p>")


def test_forum_post_table_is_replaced_and_list_flattened():
    out = core.convert(FORUM_POST_WITH_TABLE)
    assert "<p>[REMOVED]</p>" in out
    assert "How often do you have a drink" not in out
    assert (
        "<ul><li>Questions 1 to 8 scores are from left to right.</li>"
        "<li>Questions 9 and 10 scores from left to right.</li></ul>"
    ) in out
    assert "_Toc120367226" not in out
    assert out.endswith("<p>Do take care. ((hugs)) -Mebenji</p>")
