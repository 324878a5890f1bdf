from __future__ import annotations

from typing import Any

from .config_schema import DEFAULT_CDN_TEMPLATE
from .post import FacetLink, NormalizedPost
from .raw import RawPost, _mapping, _nonblank_str

IMAGES_EMBED_TYPE = "app.bsky.embed.images"
LINK_FEATURE_TYPE = "app.bsky.richtext.facet#link"


def _coerce_offset(value: Any) -> int | None:
    # bool is an int subclass; a JSON true is not an offset.
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value >= 0 else None


def _image_url(image: Any, author_did: str, cdn_template: str) -> str | None:
    blob = _mapping(_mapping(image).get("image"))
    link = _nonblank_str(_mapping(blob.get("ref")).get("$link"))
    mime = _nonblank_str(blob.get("mimeType"))
    if not link or not mime:
        return None

    ext = mime.split("/")[-1]
    return cdn_template.format(did=author_did, link=link, ext=ext)


def extract_embeds(
    embed: Any,
    author_did: str,
    *,
    cdn_template: str = DEFAULT_CDN_TEMPLATE,
) -> list[str]:
    """
    Resolve an image-gallery embed to one CDN thumbnail URL per image.

    Any other embed type (external cards, quotes, video, unknown future types)
    or an absent embed yields an empty list.
    """
    data = _mapping(embed)
    if data.get("$type") != IMAGES_EMBED_TYPE:
        return []

    images = data.get("images")
    if not isinstance(images, list):
        return []

    out: list[str] = []
    for image in images:
        url = _image_url(image, author_did, cdn_template)
        if url:
            out.append(url)
    return out


def extract_facets(facets: Any) -> list[FacetLink]:
    """
    Collect link features from richtext facets, in input order.

    Mention and tag features are ignored. A facet with several link features
    yields several FacetLinks over the same byte range.
    """
    if not isinstance(facets, list):
        return []

    out: list[FacetLink] = []
    for facet in facets:
        data = _mapping(facet)
        index = _mapping(data.get("index"))
        start = _coerce_offset(index.get("byteStart"))
        end = _coerce_offset(index.get("byteEnd"))
        if start is None or end is None or start > end:
            continue

        features = data.get("features")
        if not isinstance(features, list):
            continue

        for feature in features:
            feat = _mapping(feature)
            if feat.get("$type") != LINK_FEATURE_TYPE:
                continue
            uri = _nonblank_str(feat.get("uri"))
            if uri:
                out.append(FacetLink(uri=uri, start=start, end=end))
    return out


def normalize_post(
    post: RawPost,
    author_did: str,
    *,
    cdn_template: str = DEFAULT_CDN_TEMPLATE,
) -> NormalizedPost:
    return NormalizedPost(
        uri=post.uri,
        text=post.text,
        embed=tuple(extract_embeds(post.embed, author_did, cdn_template=cdn_template)),
        facets=tuple(extract_facets(post.facets)),
    )
