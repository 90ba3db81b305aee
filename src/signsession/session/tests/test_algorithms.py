import hashlib
import unittest

import pytest

from signsession.common.data import SUPPORTED_ALGORITHMS, AlgorithmDNSSEC, KeyRole
from signsession.common.ecdsa_utils import ECCurve
from signsession.common.errors import KeyTypeMismatchError, UnsupportedAlgorithmError
from signsession.misc.crypto import generate_ec_key, generate_rsa_key
from signsession.session.algorithms import (
    ALGORITHMS,
    KeyFamily,
    get_algorithm,
    get_public_key_bytes,
)
from signsession.session.signer import FileSigner, SigKeys


class TestRegistry(unittest.TestCase):
    def test_supported(self) -> None:
        self.assertEqual(set(ALGORITHMS.keys()), set(SUPPORTED_ALGORITHMS))

    def test_rsa_sizes(self) -> None:
        spec = get_algorithm(AlgorithmDNSSEC.RSASHA256)
        self.assertEqual(spec.family, KeyFamily.RSA)
        self.assertEqual(spec.key_size(KeyRole.KSK), 2048)
        self.assertEqual(spec.key_size(KeyRole.ZSK), 1024)
        self.assertEqual(spec.generate(KeyRole.ZSK).key_size, 1024)

    def test_ecdsa_curve(self) -> None:
        spec = get_algorithm(AlgorithmDNSSEC.ECDSAP256SHA256)
        self.assertEqual(spec.family, KeyFamily.EC)
        self.assertEqual(spec.curve, ECCurve.P256)
        self.assertEqual(spec.generate(KeyRole.KSK).curve.name, "secp256r1")

    def test_encode_public_mismatch(self) -> None:
        """Test an EC key can't be exported as an RSA key, and vice versa"""
        ec_pub = FileSigner(generate_ec_key(ECCurve.P256), "ec").public_key()
        rsa_pub = FileSigner(generate_rsa_key(1024), "rsa").public_key()
        with self.assertRaises(KeyTypeMismatchError):
            get_algorithm(AlgorithmDNSSEC.RSASHA256).encode_public(ec_pub)
        with self.assertRaises(KeyTypeMismatchError):
            get_algorithm(AlgorithmDNSSEC.ECDSAP256SHA256).encode_public(rsa_pub)

    def test_ksk_encoded_first(self) -> None:
        """Test a KSK of the wrong family fails the export"""
        keys = SigKeys(
            zsk_signer=FileSigner(generate_ec_key(ECCurve.P256), "zsk"),
            ksk_signer=FileSigner(generate_rsa_key(1024), "ksk"),
        )
        with pytest.raises(KeyTypeMismatchError) as exc_info:
            get_public_key_bytes(AlgorithmDNSSEC.ECDSAP256SHA256, keys)
        assert "alg=RSA" in str(exc_info.value)


@pytest.mark.parametrize(
    "algorithm", [x for x in AlgorithmDNSSEC if x not in SUPPORTED_ALGORITHMS]
)
def test_unsupported(algorithm: AlgorithmDNSSEC) -> None:
    with pytest.raises(UnsupportedAlgorithmError):
        get_algorithm(algorithm)


class TestFileSigner(unittest.TestCase):
    def test_ecdsa_signature(self) -> None:
        """Test ECDSA signatures are in the 64 bytes r || s format, and verify"""
        signer = FileSigner(generate_ec_key(ECCurve.P256), "test")
        data = b"example.com. 3600 IN A 192.0.2.1"
        signature = signer.sign(data, AlgorithmDNSSEC.ECDSAP256SHA256)
        self.assertEqual(len(signature), 64)
        signer.public_key().verify_signature(
            signature, data, AlgorithmDNSSEC.ECDSAP256SHA256
        )

    def test_sign_digest(self) -> None:
        signer = FileSigner(generate_rsa_key(1024), "test")
        data = b"example.com. 3600 IN A 192.0.2.1"
        signature = signer.sign_digest(
            hashlib.sha256(data).digest(), AlgorithmDNSSEC.RSASHA256
        )
        signer.public_key().verify_signature(signature, data, AlgorithmDNSSEC.RSASHA256)

    def test_bad_digest_length(self) -> None:
        signer = FileSigner(generate_rsa_key(1024), "test")
        with self.assertRaises(ValueError):
            signer.sign_digest(b"\x00" * 20, AlgorithmDNSSEC.RSASHA256)

    def test_algorithm_mismatch(self) -> None:
        """Test signing with an algorithm of another key family"""
        rsa_signer = FileSigner(generate_rsa_key(1024), "rsa")
        ec_signer = FileSigner(generate_ec_key(ECCurve.P256), "ec")
        with self.assertRaises(KeyTypeMismatchError):
            rsa_signer.sign(b"data", AlgorithmDNSSEC.ECDSAP256SHA256)
        with self.assertRaises(KeyTypeMismatchError):
            ec_signer.sign(b"data", AlgorithmDNSSEC.RSASHA256)
        with self.assertRaises(KeyTypeMismatchError):
            ec_signer.sign(b"data", AlgorithmDNSSEC.ECDSAP384SHA384)

    def test_str(self) -> None:
        signer = FileSigner(generate_ec_key(ECCurve.P256), "ZSK")
        self.assertEqual(str(signer), "key_label=ZSK alg=EC bits=256 curve=secp256r1")
