"""Conversion of selected candidates to Stremio stream objects."""

from __future__ import annotations

from typing import Any

from debridarr.domain.entities.candidate import StreamCandidate
from debridarr.domain.entities.resolution import PlayReference
from debridarr.infrastructure.security.play_signer import PlayLinkSigner

# data: URL so the player has something to show instead of retrying forever.
PLACEHOLDER_STREAM: dict[str, Any] = {
    "name": "🚫 No Streams Available",
    "title": "No playable streams were found for this title.",
    "url": "data:text/plain;charset=utf-8,No%20streams%20available",
    "behaviorHints": {"notWebReady": True},
}

_ROLE_LABELS = {"primary": "", "fallback": "⬇️ ", "second_opinion": "🔁 "}


def _human_size(size_bytes: int) -> str:
    if size_bytes <= 0:
        return ""
    gib = size_bytes / 1024**3
    if gib >= 1:
        return f"{gib:.2f} GB"
    return f"{size_bytes / 1024**2:.0f} MB"


def _is_magnet(url: str | None) -> bool:
    return bool(url) and url.lower().startswith("magnet:")


def _description(candidate: StreamCandidate) -> str:
    release = candidate.filename or candidate.title.split("\n", 1)[0]
    details = [
        d
        for d in (
            _human_size(candidate.size_bytes),
            (candidate.codec or "").upper(),
            "/".join(candidate.languages).upper(),
            candidate.source,
        )
        if d
    ]
    return "\n".join(p for p in (release, " | ".join(details)) if p)


def format_stream(
    candidate: StreamCandidate,
    *,
    role: str,
    addon_name: str,
    content_id: str,
    signer: PlayLinkSigner,
    base_url: str,
    credential: str | None,
    provider: str,
    provider_short: str,
) -> dict[str, Any]:
    """Build one Stremio stream dict.

    Pre-resolved candidates keep their direct URL.  Torrents, by info-hash
    or magnet, become signed play links when a credential is present,
    otherwise plain streams the player can handle itself.
    """
    label = _ROLE_LABELS.get(role, "")
    stream: dict[str, Any] = {
        "title": _description(candidate),
        "behaviorHints": {
            "bingeGroup": f"{addon_name.lower()}-{candidate.resolution.label}",
        },
    }
    if candidate.filename:
        stream["behaviorHints"]["filename"] = candidate.filename
    if candidate.size_bytes > 0:
        stream["behaviorHints"]["videoSize"] = candidate.size_bytes

    if candidate.resolved and candidate.url:
        stream["name"] = f"{label}{addon_name} ⚡\n{candidate.resolution.label}"
        stream["url"] = candidate.url
        return stream

    magnet = candidate.url if _is_magnet(candidate.url) else None
    if (candidate.info_hash or magnet) and credential:
        ref = PlayReference(
            info_hash=candidate.info_hash,
            magnet=None if candidate.info_hash else magnet,
            file_index=candidate.file_index,
            content_id=content_id,
            filename=candidate.filename,
            credential=credential,
            provider=provider,
        )
        stream["name"] = (
            f"{label}{addon_name} [{provider_short}]\n{candidate.resolution.label}"
        )
        stream["url"] = signer.build_play_url(base_url, ref)
        stream["behaviorHints"]["notWebReady"] = True
        return stream

    stream["name"] = f"{label}{addon_name}\n{candidate.resolution.label}"
    if candidate.info_hash:
        stream["infoHash"] = candidate.info_hash
        if candidate.file_index is not None:
            stream["fileIdx"] = candidate.file_index
        if candidate.trackers:
            stream["sources"] = list(candidate.trackers)
    else:
        stream["url"] = candidate.url
    return stream
