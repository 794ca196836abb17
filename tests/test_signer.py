from datetime import datetime, UTC

from bucketkit._signer import EMPTY_PAYLOAD_HASH, AwsSignatureV4Signer, hash_payload

from conftest import ACCESS_KEY, SECRET_KEY

# Published AWS Signature V4 examples for Amazon S3
EXAMPLE_TIME = datetime(2013, 5, 24, tzinfo=UTC)


def test_empty_payload_hash():
    assert EMPTY_PAYLOAD_HASH == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
    assert hash_payload(None) == EMPTY_PAYLOAD_HASH
    assert hash_payload(b"") == EMPTY_PAYLOAD_HASH


def test_get_object_example_signature():
    signer = AwsSignatureV4Signer(ACCESS_KEY, SECRET_KEY, "us-east-1")

    headers = signer.sign_request(
        method="GET",
        host="examplebucket.s3.amazonaws.com",
        path="/test.txt",
        headers={"Range": "bytes=0-9"},
        timestamp=EXAMPLE_TIME,
    )

    auth = headers["Authorization"]
    assert f"Credential={ACCESS_KEY}/20130524/us-east-1/s3/aws4_request" in auth
    assert "SignedHeaders=host;range;x-amz-content-sha256;x-amz-date" in auth
    assert auth.endswith("Signature=f0e8bdb87c964420e857bd35b5d6ed310bd44f0170aba48dd91039c6036bdb41")
    assert headers["x-amz-date"] == "20130524T000000Z"
    assert headers["x-amz-content-sha256"] == EMPTY_PAYLOAD_HASH


def test_list_objects_example_signature():
    signer = AwsSignatureV4Signer(ACCESS_KEY, SECRET_KEY, "us-east-1")

    headers = signer.sign_request(
        method="GET",
        host="examplebucket.s3.amazonaws.com",
        path="/",
        query_params={"max-keys": "2", "prefix": "J"},
        timestamp=EXAMPLE_TIME,
    )

    assert headers["Authorization"].endswith(
        "Signature=34b48302e7b5fa45bde8084f4b7868a86f0a534bc59db6670ed5711ef69dc6f7"
    )


def test_signature_is_region_scoped():
    east = AwsSignatureV4Signer(ACCESS_KEY, SECRET_KEY, "us-east-1")
    west = AwsSignatureV4Signer(ACCESS_KEY, SECRET_KEY, "eu-west-1")
    kwargs = dict(method="GET", host="b.s3.amazonaws.com", path="/k", timestamp=EXAMPLE_TIME)

    east_auth = east.sign_request(**kwargs)["Authorization"]
    west_auth = west.sign_request(**kwargs)["Authorization"]

    assert "/eu-west-1/s3/aws4_request" in west_auth
    assert east_auth.split("Signature=")[1] != west_auth.split("Signature=")[1]


def test_session_token_is_sent_and_signed():
    signer = AwsSignatureV4Signer(ACCESS_KEY, SECRET_KEY, "us-east-1", session_token="TOKEN")
    headers = signer.sign_request(method="GET", host="b.s3.amazonaws.com", path="/", timestamp=EXAMPLE_TIME)
    assert headers["x-amz-security-token"] == "TOKEN"
    assert "x-amz-security-token" in headers["Authorization"].split("SignedHeaders=")[1]
