import pytest

from src.reel_downloader.services.media_shapes import (
    SHAPES,
    absolute_url,
    pick_highest_resolution_video,
    resolve_fields,
)
from src.reel_downloader.services.models import DirectUrlMatch

SHORTCODE = "ABC123xyz"


def _graphql_node(url="https://cdn.example.com/graphql.mp4", **extra):
    node = {
        "is_video": True,
        "video_url": url,
        "display_url": "https://cdn.example.com/graphql.jpg",
        "owner": {"username": "alice"},
        "edge_media_preview_like": {"count": 10},
        "edge_media_to_comment": {"count": 2},
        "video_view_count": 99,
        "edge_media_to_caption": {"edges": [{"node": {"text": "graphql caption"}}]},
    }
    node.update(extra)
    return node


def _api_item(url="https://cdn.example.com/api.mp4"):
    return {
        "video_versions": [
            {"url": "https://cdn.example.com/api-low.mp4", "width": 480, "height": 640},
            {"url": url, "width": 1080, "height": 1920},
        ],
        "image_versions2": {"candidates": [{"url": "https://cdn.example.com/api.jpg"}]},
        "caption": {"text": "api caption"},
        "user": {"username": "bob"},
        "like_count": 5,
        "comment_count": 3,
        "play_count": 700,
    }


SHAPE_FIXTURES = {
    "direct-url": DirectUrlMatch(
        url="https://cdn.example.com/direct.mp4",
        pattern="og-video",
        metadata={"like_count": 3, "user": {"username": "carol"}},
    ),
    "post-page-require": {
        "require": [
            ["SomethingElse", {}],
            ["PostPage", {"graphql": {"shortcode_media": _graphql_node()}}],
        ]
    },
    "shared-data-entry": {"entry_data": {"PostPage": [{"graphql": {"shortcode_media": _graphql_node()}}]}},
    "api-items": {"items": [_api_item()]},
    "apollo-state": {
        "ROOT_QUERY": {},
        "User:1": {"username": "dave"},
        f"ShortcodeMedia:{SHORTCODE}": {
            "video_url": "https://cdn.example.com/apollo.mp4",
            "owner": {"__ref": "User:1"},
        },
    },
    "graphql-media": {"graphql": {"shortcode_media": _graphql_node()}},
    "relay-web-info": {
        "require": [
            [
                "ScheduledServerJS",
                "handle",
                None,
                [
                    {
                        "__bbox": {
                            "result": {
                                "data": {
                                    "xdt_api__v1__media__shortcode__web_info": {"items": [_api_item()]}
                                }
                            }
                        }
                    }
                ],
            ]
        ]
    },
}


@pytest.mark.parametrize("shape_name", list(SHAPE_FIXTURES))
def test_fixture_selects_its_own_shape(shape_name):
    name, _result = resolve_fields(SHAPE_FIXTURES[shape_name], "", SHORTCODE)

    assert name == shape_name


def test_shapes_are_tried_in_documented_order():
    assert [name for name, _shape in SHAPES] == [
        "direct-url",
        "post-page-require",
        "shared-data-entry",
        "api-items",
        "apollo-state",
        "graphql-media",
        "relay-web-info",
        "page-text",
    ]


def test_post_page_require_reads_graphql_fields():
    _name, result = resolve_fields(SHAPE_FIXTURES["post-page-require"], "", SHORTCODE)

    assert result.media_url == "https://cdn.example.com/graphql.mp4"
    assert result.thumbnail_url == "https://cdn.example.com/graphql.jpg"
    assert result.owner == "alice"
    assert result.caption == "graphql caption"
    assert (result.like_count, result.comment_count, result.view_count) == (10, 2, 99)


def test_post_page_require_reads_items_variant():
    document = {"require": [["PostPage", {"items": [_api_item()]}]]}

    name, result = resolve_fields(document, "", SHORTCODE)

    assert name == "post-page-require"
    assert result.media_url == "https://cdn.example.com/api.mp4"


def test_post_page_require_matches_entry_by_shortcode():
    document = {"require": [["Module", {"shortcode": SHORTCODE, "graphql": {"shortcode_media": _graphql_node()}}]]}

    name, _result = resolve_fields(document, "", SHORTCODE)

    assert name == "post-page-require"


def test_api_items_picks_highest_resolution_and_play_count():
    _name, result = resolve_fields(SHAPE_FIXTURES["api-items"], "", SHORTCODE)

    assert result.media_url == "https://cdn.example.com/api.mp4"
    assert result.thumbnail_url == "https://cdn.example.com/api.jpg"
    assert result.owner == "bob"
    assert result.caption == "api caption"
    assert (result.like_count, result.comment_count, result.view_count) == (5, 3, 700)


def test_apollo_state_follows_owner_reference():
    _name, result = resolve_fields(SHAPE_FIXTURES["apollo-state"], "", SHORTCODE)

    assert result.media_url == "https://cdn.example.com/apollo.mp4"
    assert result.owner == "dave"


def test_apollo_state_camel_case_entity():
    document = {
        "ROOT_QUERY": {},
        f"Media:{SHORTCODE}": {
            "videoUrl": "https://cdn.example.com/camel.mp4",
            "displayUrl": "https://cdn.example.com/camel.jpg",
            "caption": "camel caption",
            "owner": {"username": "erin"},
        },
    }

    name, result = resolve_fields(document, "", SHORTCODE)

    assert name == "apollo-state"
    assert result.media_url == "https://cdn.example.com/camel.mp4"
    assert result.thumbnail_url == "https://cdn.example.com/camel.jpg"
    assert result.caption == "camel caption"
    assert result.owner == "erin"
    assert result.like_count == 0


def test_apollo_state_ignores_other_shortcodes():
    document = {"ROOT_QUERY": {}, "Media:OTHER": {"video_url": "https://cdn.example.com/other.mp4"}}

    assert resolve_fields(document, "", SHORTCODE) is None


def test_direct_url_uses_loose_metadata_and_defaults():
    _name, result = resolve_fields(SHAPE_FIXTURES["direct-url"], "", SHORTCODE)

    assert result.media_url == "https://cdn.example.com/direct.mp4"
    assert result.owner == "carol"
    assert result.like_count == 3
    assert result.comment_count == 0
    assert result.view_count == 0
    assert result.caption == ""
    assert result.thumbnail_url == ""


def test_graphql_media_requires_is_video():
    document = {"graphql": {"shortcode_media": _graphql_node(is_video=False)}}

    # relay-web-info still finds the node because it has a video URL
    name, _result = resolve_fields(document, "", SHORTCODE)

    assert name == "relay-web-info"


def test_partial_earlier_shape_falls_through_to_later_shape():
    document = {
        "items": [{"video_versions": []}],
        "graphql": {"shortcode_media": _graphql_node()},
    }

    name, _result = resolve_fields(document, "", SHORTCODE)

    assert name == "graphql-media"


def test_shape_without_media_url_is_not_a_match():
    document = {"graphql": {"shortcode_media": {"is_video": True, "owner": {"username": "alice"}}}}

    assert resolve_fields(document, "", SHORTCODE) is None


def test_relative_media_url_is_rejected():
    document = {"items": [{"video_versions": [{"url": "/relative.mp4"}]}]}

    assert resolve_fields(document, "", SHORTCODE) is None


def test_page_text_reads_preloader_payload():
    page_text = (
        'x PolarisPostRootQueryRelayPreloader_abc",{"__bbox":{"complete":true,"result":{"data":'
        '{"xdt_api__v1__media__shortcode__web_info":{"items":[{"video_versions":'
        '[{"width":1,"height":1,"url":"https://cdn.example.com/preloader.mp4"}],"like_count":4}]}}}}}]'
    )

    name, result = resolve_fields({"unrelated": True}, page_text, SHORTCODE)

    assert name == "page-text"
    assert result.media_url == "https://cdn.example.com/preloader.mp4"
    assert result.like_count == 4


def test_page_text_falls_back_to_content_url():
    page_text = 'foo "contentUrl":"https://cdn.example.com/content.mp4" bar'

    name, result = resolve_fields({"unrelated": True}, page_text, SHORTCODE)

    assert name == "page-text"
    assert result.media_url == "https://cdn.example.com/content.mp4"


def test_page_text_reads_prefixed_url_keys():
    page_text = (
        '<script type="application/json" data-sjs>{"foo":"bar"}</script>'
        r'<script>x={"video_url":"https:\/\/cdn.example.com\/v.mp4"}</script>'
    )

    name, result = resolve_fields({"foo": "bar"}, page_text, SHORTCODE)

    assert name == "page-text"
    assert result.media_url == "https://cdn.example.com/v.mp4"


def test_nothing_matches():
    assert resolve_fields({"foo": 1}, "<html></html>", SHORTCODE) is None


def test_pick_highest_resolution_video_keeps_first_on_tie():
    versions = [{"url": "https://a/1.mp4"}, {"url": "https://a/2.mp4"}]

    assert pick_highest_resolution_video(versions) == "https://a/1.mp4"
    assert pick_highest_resolution_video(None) is None


@pytest.mark.parametrize(
    "value, expected",
    [
        ("https://cdn.example.com/v.mp4", "https://cdn.example.com/v.mp4"),
        (r"https:\/\/cdn.example.com\/v.mp4", "https://cdn.example.com/v.mp4"),
        ("//cdn.example.com/v.mp4", None),
        ("ftp://cdn.example.com/v.mp4", None),
        ("", None),
        (None, None),
    ],
)
def test_absolute_url(value, expected):
    assert absolute_url(value) == expected
