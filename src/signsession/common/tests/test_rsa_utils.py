import unittest

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.padding import PKCS1v15

from signsession.common.data import AlgorithmDNSSEC
from signsession.common.errors import KeyTypeMismatchError
from signsession.common.public_key import PublicKey
from signsession.common.rsa_utils import PublicKey_RSA, is_algorithm_rsa


class TestRsaUtils(unittest.TestCase):
    def test_encode_decode_rsa_public_key_short(self) -> None:
        """Test encode-decode with short exponent"""
        key = PublicKey_RSA(bits=32, exponent=3, n=b"test")
        encoded = key.encode_public_key()
        self.assertEqual(encoded, b"\x01\x03test")
        self.assertEqual(key, PublicKey_RSA.decode_public_key(encoded))

    def test_encode_decode_rsa_public_key_long(self) -> None:
        """Test encode-decode with exponent requiring long length encoding"""
        key = PublicKey_RSA(bits=32, exponent=16**2000, n=b"test")
        encoded = key.encode_public_key()
        self.assertEqual(key, PublicKey_RSA.decode_public_key(encoded))
        # verify long encoding was used
        self.assertEqual(encoded[0:2], b"\x00\x03")

    def test_decode_rsa_public_key_three_bytes_exponent(self) -> None:
        """Test decode of the common exponent 65537"""
        expected = PublicKey_RSA(bits=32, exponent=65537, n=b"test")
        self.assertEqual(expected, PublicKey_RSA.decode_public_key(b"\x03\x01\x00\x01test"))

    def test_decode_rsa_public_key_too_short(self) -> None:
        """Test decoding truncated public keys"""
        with self.assertRaises(ValueError):
            PublicKey_RSA.decode_public_key(b"\x03")
        with self.assertRaises(ValueError):
            PublicKey_RSA.decode_public_key(b"\x03\x01\x00\x01")


class TestRsaCryptography(unittest.TestCase):
    def setUp(self) -> None:
        self.private_key = rsa.generate_private_key(public_exponent=65537, key_size=1024)

    def test_from_cryptography(self) -> None:
        """Test modulus and exponent are extracted from a cryptography key"""
        pubkey = PublicKey.from_cryptography(self.private_key.public_key())
        assert isinstance(pubkey, PublicKey_RSA)
        numbers = self.private_key.public_key().public_numbers()
        self.assertEqual(pubkey.bits, 1024)
        self.assertEqual(pubkey.exponent, 65537)
        self.assertEqual(len(pubkey.n), 128)
        self.assertEqual(int.from_bytes(pubkey.n, byteorder="big"), numbers.n)
        self.assertEqual(
            pubkey.to_cryptography_pubkey().public_numbers(), numbers
        )

    def test_from_bytes(self) -> None:
        """Test decoding encoded public key bytes through the base class"""
        pubkey = PublicKey.from_cryptography(self.private_key.public_key())
        decoded = PublicKey.from_bytes(pubkey.encode_public_key(), AlgorithmDNSSEC.RSASHA256)
        self.assertEqual(pubkey, decoded)

    def test_verify_signature(self) -> None:
        """Test verifying signatures made by cryptography"""
        pubkey = PublicKey.from_cryptography(self.private_key.public_key())
        data = b"some data to sign"
        signature = self.private_key.sign(data, PKCS1v15(), hashes.SHA256())
        pubkey.verify_signature(signature, data, AlgorithmDNSSEC.RSASHA256)
        with self.assertRaises(InvalidSignature):
            pubkey.verify_signature(signature, data + b"x", AlgorithmDNSSEC.RSASHA256)
        with self.assertRaises(KeyTypeMismatchError):
            pubkey.verify_signature(signature, data, AlgorithmDNSSEC.ECDSAP256SHA256)

    def test_is_algorithm_rsa(self) -> None:
        self.assertTrue(is_algorithm_rsa(AlgorithmDNSSEC.RSASHA256))
        self.assertFalse(is_algorithm_rsa(AlgorithmDNSSEC.ECDSAP256SHA256))
        self.assertFalse(is_algorithm_rsa(AlgorithmDNSSEC.ED25519))
