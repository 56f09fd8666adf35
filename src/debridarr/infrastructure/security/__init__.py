from .play_signer import PlayLinkSigner, credential_fingerprint

__all__ = ["PlayLinkSigner", "credential_fingerprint"]
