import pytest
from pydantic import ValidationError

from dmbot import ConversationIdentity, derive_conversation_identity, with_sig, without_sig


def test_derive_conversation_identity_prefixes_ship_name() -> None:
    assert derive_conversation_identity("zod").name == "dm--zod"


def test_derive_conversation_identity_ignores_sigil() -> None:
    assert derive_conversation_identity("~zod") == derive_conversation_identity("zod")


def test_conversation_identity_is_immutable() -> None:
    identity = derive_conversation_identity("zod")
    with pytest.raises(ValidationError):
        identity.name = "dm--bus"  # type: ignore[misc]
    assert identity == ConversationIdentity(name="dm--zod")


def test_sig_helpers() -> None:
    assert with_sig("bus") == "~bus"
    assert with_sig("~bus") == "~bus"
    assert without_sig("~sampel-palnet") == "sampel-palnet"
    assert without_sig("zod") == "zod"
