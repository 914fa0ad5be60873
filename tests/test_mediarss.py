import datetime

import pytest
from lxml import etree

from fastmediarss import (
    MediaCommunity,
    MediaObject,
    MediaTag,
    MissingContentError,
    NestingTooDeepError,
    UnknownMimeTypeError,
    handle_media_community,
    handle_media_content,
    handle_media_credit,
    handle_media_element,
    handle_media_group,
    handle_media_text,
    handle_media_thumbnail,
    handle_text,
    media_tag,
)

MEDIA_NS = "http://search.yahoo.com/mrss/"


def media(fragment: str):
    """Parse a fragment with the media prefix bound to the MediaRSS namespace."""
    wrapped = f'<root xmlns:media="{MEDIA_NS}" xmlns:x="urn:example">{fragment}</root>'
    return etree.fromstring(wrapped)[0]


def test_media_tag_recognizes_known_elements():
    assert media_tag(media("<media:title>t</media:title>")) is MediaTag.TITLE
    assert media_tag(media('<media:content url="u"/>')) is MediaTag.CONTENT


def test_media_tag_accepts_legacy_namespace():
    element = etree.fromstring(
        '<media:credit xmlns:media="http://search.yahoo.com/mrss">Jo</media:credit>'
    )
    assert media_tag(element) is MediaTag.CREDIT


def test_media_tag_ignores_unknown_and_foreign_elements():
    assert media_tag(media("<media:player url='u'/>")) is None
    assert media_tag(media("<x:title>t</x:title>")) is None
    assert media_tag(media("<title>t</title>")) is None


def test_title_defaults_to_plain_text():
    text = handle_text(media("<media:title>Big Buck Bunny</media:title>"))
    assert text.content == "Big Buck Bunny"
    assert text.content_type == "text/plain"


def test_description_html_keeps_markup():
    text = handle_text(
        media(
            '<media:description type="html">'
            "<![CDATA[<p>An <b>open</b> movie</p>]]>"
            "</media:description>"
        )
    )
    assert text.content == "<p>An <b>open</b> movie</p>"
    assert text.content_type == "text/html"


def test_title_serializes_nested_elements():
    text = handle_text(media('<media:title type="html">Hello <b>world</b>!</media:title>'))
    assert text.content == "Hello <b>world</b>!"


def test_description_keeps_namespace_used_by_markup():
    text = handle_text(
        media(
            '<media:description type="html">See <x:ref id="1">this</x:ref></media:description>'
        )
    )
    assert text.content == 'See <x:ref xmlns:x="urn:example" id="1">this</x:ref>'


def test_title_unknown_type_raises():
    with pytest.raises(UnknownMimeTypeError) as excinfo:
        handle_text(media('<media:title type="weird">x</media:title>'))
    assert excinfo.value.mime_type == "weird"
    assert isinstance(excinfo.value, ValueError)


def test_title_without_content_raises():
    with pytest.raises(MissingContentError):
        handle_text(media('<media:title type="plain"/>'))


def test_content_reads_attributes():
    content = handle_media_content(
        media(
            '<media:content url="http://example.com/v.mp4" type="video/MP4; codecs=avc1"'
            ' width="640" height="360" medium="video" fileSize="1024" duration="185"'
            ' bitrate="128"/>'
        )
    )
    assert content.url == "http://example.com/v.mp4"
    assert content.content_type == "video/mp4"
    assert content.width == 640
    assert content.height == 360
    assert content.medium == "video"
    assert content.size == 1024
    assert content.duration == datetime.timedelta(seconds=185)


def test_content_ignores_unparsable_attributes():
    content = handle_media_content(
        media(
            '<media:content url="u" type="not a mime" width="wide" height="-1"'
            ' fileSize="1.5" duration="3:00"/>'
        )
    )
    assert content.url == "u"
    assert content.content_type is None
    assert content.width is None
    assert content.height is None
    assert content.size is None
    assert content.duration is None


def test_content_without_url_is_dropped():
    assert handle_media_content(media('<media:content type="video/mp4" width="1"/>')) is None


def test_content_width_out_of_u32_range_is_ignored():
    content = handle_media_content(media('<media:content url="u" width="4294967296"/>'))
    assert content.width is None


def test_thumbnail_with_time():
    thumbnail = handle_media_thumbnail(
        media('<media:thumbnail url="http://example.com/t.jpg" width="75" height="50" time="12:05:01.123"/>')
    )
    assert thumbnail.image.url == "http://example.com/t.jpg"
    assert thumbnail.image.width == 75
    assert thumbnail.image.height == 50
    assert thumbnail.time == datetime.timedelta(hours=12, minutes=5, seconds=1, milliseconds=123)


def test_thumbnail_bad_time_is_ignored():
    thumbnail = handle_media_thumbnail(media('<media:thumbnail url="u" time="soon"/>'))
    assert thumbnail.image.url == "u"
    assert thumbnail.time is None


def test_thumbnail_without_url_is_dropped():
    assert handle_media_thumbnail(media('<media:thumbnail width="75"/>')) is None


def test_community_reads_rating_and_statistics():
    community = handle_media_community(
        media(
            "<media:community>"
            '<media:starRating average="4.5" count="10" min="1" max="5"/>'
            '<media:statistics views="5000" favorites="12"/>'
            '<media:tags>news: 5</media:tags>'
            "</media:community>"
        )
    )
    assert community == MediaCommunity(
        stars_avg=4.5,
        stars_count=10,
        stars_min=1,
        stars_max=5,
        stats_views=5000,
        stats_favorites=12,
    )


def test_community_bad_values_keep_defaults():
    community = handle_media_community(
        media(
            "<media:community>"
            '<media:starRating average="abc" count="-3" min="x" max="5"/>'
            '<media:statistics views="many"/>'
            "</media:community>"
        )
    )
    assert community.stars_avg == 0.0
    assert community.stars_count == 0
    assert community.stars_min == 0
    assert community.stars_max == 5
    assert community.stats_views == 0


def test_empty_community_is_all_defaults():
    assert handle_media_community(media("<media:community/>")) == MediaCommunity()


def test_credit():
    credit = handle_media_credit(
        media('<media:credit role="producer" scheme="urn:ebu">  Jane Doe </media:credit>')
    )
    assert credit.text == "Jane Doe"
    assert credit.role == "producer"
    assert credit.scheme == "urn:ebu"


def test_empty_credit_is_dropped():
    assert handle_media_credit(media("<media:credit>   </media:credit>")) is None


def test_media_text_with_boundaries():
    text = handle_media_text(
        media('<media:text type="html" start="00:00:03.000" end="10.5">Oh, say can you see</media:text>')
    )
    assert text.text.content == "Oh, say can you see"
    assert text.text.content_type == "text/html"
    assert text.start_time == datetime.timedelta(seconds=3)
    assert text.end_time == datetime.timedelta(seconds=10, milliseconds=500)


def test_media_text_unknown_type_falls_back_to_plain():
    text = handle_media_text(media('<media:text type="rtf" start="bad">words</media:text>'))
    assert text.text.content_type == "text/plain"
    assert text.start_time is None
    assert text.end_time is None


def test_empty_media_text_is_dropped():
    assert handle_media_text(media('<media:text start="1"/>')) is None


def test_dispatcher_overwrites_singular_fields_and_appends_lists():
    media_obj = MediaObject()
    for fragment in (
        "<media:title>first</media:title>",
        "<media:title>second</media:title>",
        '<media:thumbnail url="a"/>',
        '<media:thumbnail url="b"/>',
        "<media:credit>one</media:credit>",
        "<media:credit>two</media:credit>",
        "<media:text>line</media:text>",
        "<media:description>desc</media:description>",
        '<media:community><media:starRating average="3"/></media:community>',
    ):
        handle_media_element(media(fragment), media_obj)

    assert media_obj.title.content == "second"
    assert [t.image.url for t in media_obj.thumbnails] == ["a", "b"]
    assert [c.text for c in media_obj.credits] == ["one", "two"]
    assert media_obj.texts[0].text.content == "line"
    assert media_obj.description.content == "desc"
    assert media_obj.community.stars_avg == 3.0


def test_dispatcher_ignores_unknown_elements():
    media_obj = MediaObject()
    handle_media_element(media("<media:title>kept</media:title>"), media_obj)
    handle_media_element(media('<media:player url="p"><media:title>no</media:title></media:player>'), media_obj)
    handle_media_element(media("<x:title>foreign</x:title>"), media_obj)
    assert media_obj.title.content == "kept"
    assert not media_obj.thumbnails
    assert media_obj.content is None


def test_content_children_are_decoded_into_same_object():
    media_obj = MediaObject()
    handle_media_element(
        media(
            '<media:content url="http://example.com/v.mp4">'
            "<media:title>Nested</media:title>"
            '<media:thumbnail url="t1"/>'
            "<x:unrelated/>"
            '<media:thumbnail url="t2"/>'
            "</media:content>"
        ),
        media_obj,
    )
    assert media_obj.content.url == "http://example.com/v.mp4"
    assert media_obj.title.content == "Nested"
    assert [t.image.url for t in media_obj.thumbnails] == ["t1", "t2"]


def test_content_without_url_skips_children():
    media_obj = MediaObject()
    handle_media_element(
        media(
            '<media:content type="video/mp4" width="640">'
            "<media:title>ignored</media:title>"
            "</media:content>"
        ),
        media_obj,
    )
    assert media_obj.content is None
    assert media_obj.title is None
    assert not media_obj.has_content()


def test_nested_content_commits_outermost_last():
    media_obj = MediaObject()
    handle_media_element(
        media(
            '<media:content url="outer">'
            '<media:content url="inner"/>'
            "</media:content>"
        ),
        media_obj,
    )
    assert media_obj.content.url == "outer"


def _nested_content(levels: int) -> str:
    opening = "".join(f'<media:content url="c{i}">' for i in range(levels))
    closing = "</media:content>" * levels
    return opening + '<media:thumbnail url="deep"/>' + closing


def test_nesting_within_limit_decodes():
    media_obj = MediaObject()
    handle_media_element(media(_nested_content(3)), media_obj, max_depth=3)
    assert media_obj.thumbnails[0].image.url == "deep"
    assert media_obj.content.url == "c0"


def test_nesting_beyond_limit_raises():
    with pytest.raises(NestingTooDeepError):
        handle_media_element(media(_nested_content(4)), MediaObject(), max_depth=3)


def test_strict_error_in_content_child_propagates():
    with pytest.raises(UnknownMimeTypeError):
        handle_media_element(
            media('<media:content url="u"><media:description type="xhtml">x</media:description></media:content>'),
            MediaObject(),
        )


def test_group_collects_children():
    media_obj = handle_media_group(
        media(
            "<media:group>"
            '<media:content url="http://example.com/a.mp4" type="video/mp4"/>'
            "<media:title>Group title</media:title>"
            "<x:ignored>skip</x:ignored>"
            '<media:thumbnail url="http://example.com/a.jpg"/>'
            "</media:group>"
        )
    )
    assert media_obj.content.content_type == "video/mp4"
    assert media_obj.title.content == "Group title"
    assert len(media_obj.thumbnails) == 1


def test_empty_group_returns_default_object():
    assert handle_media_group(media("<media:group/>")) == MediaObject()


def test_to_dict_drops_unset_values():
    media_obj = handle_media_group(
        media(
            "<media:group>"
            '<media:thumbnail url="t" time="1.5"/>'
            "<media:credit>Jo</media:credit>"
            "</media:group>"
        )
    )
    assert media_obj.to_dict() == {
        "thumbnails": [{"image": {"url": "t"}, "time": 1.5}],
        "credits": [{"text": "Jo"}],
        "texts": [],
    }


@pytest.mark.parametrize("average", ["4_5", " 4.5", "4.5 ", "4,5", ""])
def test_community_rejects_loose_float_syntax(average):
    community = handle_media_community(
        media(f'<media:community><media:starRating average="{average}"/></media:community>')
    )
    assert community.stars_avg == 0.0


@pytest.mark.parametrize("average, expected", [("3", 3.0), (".5", 0.5), ("1e1", 10.0), ("+2.", 2.0)])
def test_community_accepts_plain_float_syntax(average, expected):
    community = handle_media_community(
        media(f'<media:community><media:starRating average="{average}"/></media:community>')
    )
    assert community.stars_avg == expected


def test_content_duration_beyond_timedelta_range_is_ignored():
    content = handle_media_content(media(f'<media:content url="u" duration="{10**17}"/>'))
    assert content.url == "u"
    assert content.duration is None
