import pytest

from bentree.byte_string import ByteString


class TestByteString:
    @pytest.mark.parametrize("raw, expected", [
        ("spam", b"spam"),
        ("żółw", "żółw".encode("utf-8")),
        (b"\x00\xff", b"\x00\xff"),
        (bytearray(b"abc"), b"abc"),
        (memoryview(b"abc"), b"abc"),
        ("", b""),
    ])
    def test_construct(self, raw, expected):
        bs = ByteString(raw)
        assert bs.data == expected
        assert bytes(bs) == expected
        assert len(bs) == len(expected)

    def test_construct_with_err(self):
        with pytest.raises(TypeError):
            ByteString(42)

    def test_copy_of_mutable_source(self):
        source = bytearray(b"abc")
        bs = ByteString(source)
        source[0] = ord("x")
        assert bs.data == b"abc"

    @pytest.mark.parametrize("left, right, equal", [
        (b"spam", b"spam", True),
        (b"spam", b"spa", False),
        (b"spa", b"spam", False),
        (b"Spam", b"spam", False),
        (b"", b"", True),
    ])
    def test_equals(self, left, right, equal):
        assert (ByteString(left) == ByteString(right)) is equal
        assert (ByteString(left) != ByteString(right)) is not equal

    def test_not_equal_to_raw_bytes(self):
        assert ByteString(b"spam") != b"spam"
        assert ByteString("spam") != "spam"

    def test_hashable_key(self):
        keys = {ByteString("cow"): 1}
        assert keys[ByteString(b"cow")] == 1
        assert ByteString("moo") not in keys

    def test_ordering(self):
        unordered = [ByteString(b"b"), ByteString(b"\xff"),
                     ByteString(b"a"), ByteString(b"ab")]
        assert sorted(unordered) == [ByteString(b"a"), ByteString(b"ab"),
                                     ByteString(b"b"), ByteString(b"\xff")]
        assert ByteString(b"a") <= ByteString(b"a")

    @pytest.mark.parametrize("raw, expected", [
        (b"bruno0", "bruno0"),
        ("żółw".encode("utf-8"), "żółw"),
        (b"", ""),
        (b"\xff\xfe\xfd", "<binary: 3 bytes>"),
        (b"ok\xc3", "<binary: 3 bytes>"),
    ])
    def test_display(self, raw, expected):
        assert ByteString(raw).display() == expected
        assert str(ByteString(raw)) == expected

    def test_repr(self):
        assert repr(ByteString(b"\x00a")) == "ByteString(b'\\x00a')"
