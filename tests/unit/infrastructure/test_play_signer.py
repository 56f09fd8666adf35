"""Tests for play link signing."""

from __future__ import annotations

from dataclasses import replace
from urllib.parse import parse_qs, urlsplit

from debridarr.domain.entities.resolution import PlayReference
from debridarr.infrastructure.security.play_signer import (
    SIGNATURE_LENGTH,
    PlayLinkSigner,
    credential_fingerprint,
)


class TestPlayLinkSigner:
    def test_signature_is_deterministic(self, signer: PlayLinkSigner, play_ref: PlayReference) -> None:
        sig = signer.sign(play_ref)
        assert sig == signer.sign(play_ref)
        assert len(sig) == SIGNATURE_LENGTH
        int(sig, 16)

    def test_verify_accepts_own_signature(self, signer: PlayLinkSigner, play_ref: PlayReference) -> None:
        assert signer.verify(play_ref, signer.sign(play_ref)) is True

    def test_tampered_fields_fail(self, signer: PlayLinkSigner, play_ref: PlayReference) -> None:
        sig = signer.sign(play_ref)
        assert not signer.verify(replace(play_ref, info_hash="b" * 40), sig)
        assert not signer.verify(replace(play_ref, file_index=4), sig)
        assert not signer.verify(replace(play_ref, content_id="tt0944947:1:6"), sig)
        assert not signer.verify(replace(play_ref, filename="Other.mkv"), sig)

    def test_credential_and_provider_not_signed(self, signer: PlayLinkSigner, play_ref: PlayReference) -> None:
        sig = signer.sign(play_ref)
        other = replace(play_ref, credential="another-key", provider="realdebrid")
        assert signer.verify(other, sig) is True

    def test_missing_signature_fails(self, signer: PlayLinkSigner, play_ref: PlayReference) -> None:
        assert signer.verify(play_ref, None) is False
        assert signer.verify(play_ref, "") is False

    def test_empty_torrent_ref_fails(self, signer: PlayLinkSigner) -> None:
        ref = PlayReference()
        assert signer.verify(ref, signer.sign(ref)) is False

    def test_different_secret_fails(self, play_ref: PlayReference) -> None:
        sig = PlayLinkSigner("one").sign(play_ref)
        assert PlayLinkSigner("two").verify(play_ref, sig) is False

    def test_generated_secret_when_unset(self, play_ref: PlayReference) -> None:
        a, b = PlayLinkSigner(None), PlayLinkSigner("")
        assert a.sign(play_ref) != b.sign(play_ref)


class TestBuildPlayUrl:
    def test_carries_all_fields(self, signer: PlayLinkSigner, play_ref: PlayReference) -> None:
        url = signer.build_play_url("https://addon.example.com/", play_ref)
        parts = urlsplit(url)
        assert parts.path == "/api/v1/play"
        qs = {k: v[0] for k, v in parse_qs(parts.query).items()}
        assert qs == {
            "ih": "a" * 40,
            "idx": "3",
            "cid": "tt0944947:1:5",
            "fn": "Show.S01E05.1080p.WEB-DL.mkv",
            "key": "user-api-key",
            "provider": "alldebrid",
            "sig": signer.sign(play_ref),
        }

    def test_magnet_without_hash(self, signer: PlayLinkSigner) -> None:
        ref = PlayReference(magnet="magnet:?xt=urn:btih:abc")
        qs = parse_qs(urlsplit(signer.build_play_url("http://h", ref)).query)
        assert qs["magnet"] == ["magnet:?xt=urn:btih:abc"]
        assert "ih" not in qs
        assert "key" not in qs


class TestCredentialFingerprint:
    def test_stable_and_short(self) -> None:
        assert credential_fingerprint("k") == credential_fingerprint("k")
        assert len(credential_fingerprint("k")) == 12
        assert credential_fingerprint("k") != "k"

    def test_anonymous(self) -> None:
        assert credential_fingerprint(None) == "anonymous"
