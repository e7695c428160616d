# wallet.py
import hashlib
import logging

from ecdsa import SigningKey, VerifyingKey, SECP256k1, BadSignatureError, BadDigestError, MalformedPointError
from ecdsa.util import sigdecode_string

logger = logging.getLogger(__name__)

def generate_keypair():
    """
    Returns (private_hex, public_hex_uncompressed)
    public_hex has leading '04' + X(32) + Y(32) (hex); this string is the caller identity.
    """
    sk = SigningKey.generate(curve=SECP256k1)
    vk = sk.get_verifying_key()
    priv_hex = sk.to_string().hex()
    # vk.to_string() returns X||Y (64 bytes) -> prefix with '04' for uncompressed format
    pub_hex = "04" + vk.to_string().hex()
    return priv_hex, pub_hex

def message_digest_hex(message: str) -> str:
    return hashlib.sha256(message.encode()).hexdigest()

def sign_message_hex(private_key_hex: str, message: str) -> str:
    """
    Sign the plaintext message (client-side helper, also used by tests).
    Hashes the message with sha256 and returns a DER signature hex.
    """
    sk = SigningKey.from_string(bytes.fromhex(private_key_hex), curve=SECP256k1)
    msg_hash = hashlib.sha256(message.encode()).digest()
    signature = sk.sign_digest(msg_hash)   # returns DER by default
    return signature.hex()

def verify_signature_hex(public_key_hex: str, message_hash_hex: str, signature_hex: str) -> bool:
    """
    Verify a signature where:
      - public_key_hex: either '04'+X+Y hex (uncompressed) or X+Y (no prefix)
      - message_hash_hex: sha256 digest hex of the signed message
      - signature_hex: either raw r||s hex (128 chars) or a DER hex signature.
    Returns True if valid, False otherwise.
    """
    try:
        vk_bytes = bytes.fromhex(public_key_hex)
        # handle uncompressed prefix 0x04
        if len(vk_bytes) == 65 and vk_bytes[0] == 4:
            vk_bytes = vk_bytes[1:]

        vk = VerifyingKey.from_string(vk_bytes, curve=SECP256k1)
        msg_hash_bytes = bytes.fromhex(message_hash_hex)
        sig_bytes = bytes.fromhex(signature_hex)

        # raw r||s (64 bytes)
        if len(sig_bytes) == 64:
            return vk.verify_digest(sig_bytes, msg_hash_bytes, sigdecode=sigdecode_string)

        # otherwise assume DER-encoded
        return vk.verify_digest(sig_bytes, msg_hash_bytes)
    except BadSignatureError:
        return False
    except (ValueError, BadDigestError, MalformedPointError) as e:
        # bad key format, hex decode, DER decode
        logger.warning("signature verification error: %s", e)
        return False
