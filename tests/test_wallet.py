import sys
import os

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
from wallet import generate_keypair, sign_message_hex, verify_signature_hex, message_digest_hex


def test_sign_and_verify():
    priv, pub = generate_keypair()
    assert pub.startswith('04') and len(pub) == 130
    sig = sign_message_hex(priv, 'POST /elections\n{}')
    assert verify_signature_hex(pub, message_digest_hex('POST /elections\n{}'), sig)


def test_accepts_key_without_prefix():
    priv, pub = generate_keypair()
    sig = sign_message_hex(priv, 'hello')
    assert verify_signature_hex(pub[2:], message_digest_hex('hello'), sig)


def test_other_message_rejected():
    priv, pub = generate_keypair()
    sig = sign_message_hex(priv, 'hello')
    assert not verify_signature_hex(pub, message_digest_hex('goodbye'), sig)


def test_other_key_rejected():
    priv, _ = generate_keypair()
    _, other_pub = generate_keypair()
    sig = sign_message_hex(priv, 'hello')
    assert not verify_signature_hex(other_pub, message_digest_hex('hello'), sig)


def test_malformed_input_rejected():
    _, pub = generate_keypair()
    assert not verify_signature_hex('zz', message_digest_hex('hello'), '00')
    assert not verify_signature_hex(pub, message_digest_hex('hello'), 'not-hex')
