"""Tests for texture descriptions and decoded buffers."""

import json
import unittest

import numpy as np

from MipView.core.errors import InvalidDescriptionError
from MipView.core.formats import ChannelLayout, PixelPacking, TextureFormat
from MipView.core.records import (
    DecodedPixelBuffer,
    MipDescriptor,
    MipUpload,
    NativeUpload,
    TextureDescription,
    is_halving_chain,
)


class TestMipDescriptor(unittest.TestCase):
    def test_valid(self):
        mip = MipDescriptor(64, 32, 1024)
        self.assertEqual((mip.width, mip.height, mip.payload_size), (64, 32, 1024))

    def test_integer_valued_float_accepted(self):
        mip = MipDescriptor(64.0, 32, 1024)
        self.assertEqual(mip.width, 64)
        self.assertIsInstance(mip.width, int)

    def test_rejects_non_positive(self):
        for args in ((0, 4, 8), (4, -1, 8), (4, 4, 0)):
            with self.assertRaises(InvalidDescriptionError):
                MipDescriptor(*args)

    def test_rejects_non_integer(self):
        for args in ((4.5, 4, 8), ("4", 4, 8), (True, 4, 8)):
            with self.assertRaises(InvalidDescriptionError):
                MipDescriptor(*args)

    def test_to_dict(self):
        self.assertEqual(
            MipDescriptor(4, 4, 8).to_dict(), {"width": 4, "height": 4, "payloadSize": 8}
        )


class TestTextureDescription(unittest.TestCase):
    def test_from_dict_width_height(self):
        doc = {
            "format": "bc1",
            "mips": [
                {"width": 64, "height": 64, "payloadSize": 2048},
                {"width": 32, "height": 32, "payloadSize": 512},
            ],
        }
        desc = TextureDescription.from_dict(doc)
        self.assertIs(desc.format, TextureFormat.BC1)
        self.assertEqual(len(desc.mips), 2)
        self.assertEqual((desc.base_width, desc.base_height), (64, 64))
        self.assertIsInstance(desc.mips, tuple)

    def test_from_dict_dimension_and_snake_case(self):
        doc = {"format": "DXT5", "mips": [{"dimension": [16, 8], "payload_size": 128}]}
        desc = TextureDescription.from_dict(doc)
        self.assertIs(desc.format, TextureFormat.BC3)
        self.assertEqual(desc.mips[0], MipDescriptor(16, 8, 128))

    def test_missing_payload_size_defaults_to_block_grid(self):
        doc = {"format": "bc4", "mips": [{"width": 5, "height": 3}]}
        desc = TextureDescription.from_dict(doc)
        self.assertEqual(desc.mips[0].payload_size, 16)

    def test_unknown_format(self):
        with self.assertRaises(InvalidDescriptionError):
            TextureDescription.from_dict({"format": "astc", "mips": [{"width": 4, "height": 4}]})

    def test_missing_format(self):
        with self.assertRaises(InvalidDescriptionError):
            TextureDescription.from_dict({"mips": [{"width": 4, "height": 4}]})

    def test_empty_mips(self):
        with self.assertRaises(InvalidDescriptionError):
            TextureDescription.from_dict({"format": "bc1", "mips": []})
        with self.assertRaises(InvalidDescriptionError):
            TextureDescription(TextureFormat.BC1, ())

    def test_malformed_entries(self):
        bad_docs = [
            [],
            {"format": "bc1", "mips": "nope"},
            {"format": "bc1", "mips": [7]},
            {"format": "bc1", "mips": [{"dimension": [4]}]},
            {"format": "bc1", "mips": [{"width": 4}]},
            {"format": "bc1", "mips": [{"width": 0, "height": 4}]},
        ]
        for doc in bad_docs:
            with self.assertRaises(InvalidDescriptionError, msg=repr(doc)):
                TextureDescription.from_dict(doc)

    def test_from_json_round_trip(self):
        desc = TextureDescription(
            TextureFormat.BC5, (MipDescriptor(8, 8, 64), MipDescriptor(4, 4, 16))
        )
        again = TextureDescription.from_json(json.dumps(desc.to_dict()))
        self.assertEqual(again, desc)

    def test_from_json_invalid(self):
        with self.assertRaises(InvalidDescriptionError):
            TextureDescription.from_json("{not json")
        with self.assertRaises(InvalidDescriptionError):
            TextureDescription.from_json(b"\xff\xfe\x00")

    def test_invalid_description_is_value_error(self):
        with self.assertRaises(ValueError):
            TextureDescription.from_json("[]")


class TestHalvingChain(unittest.TestCase):
    def test_halving(self):
        mips = [MipDescriptor(8, 4, 32), MipDescriptor(4, 2, 8), MipDescriptor(2, 1, 8),
                MipDescriptor(1, 1, 8)]
        self.assertTrue(is_halving_chain(mips))
        self.assertTrue(TextureDescription(TextureFormat.BC1, mips).is_halving_chain())

    def test_single_mip_is_halving(self):
        self.assertTrue(is_halving_chain([MipDescriptor(8, 8, 32)]))

    def test_non_halving(self):
        mips = [MipDescriptor(8, 8, 32), MipDescriptor(8, 8, 32)]
        self.assertFalse(is_halving_chain(mips))


class TestDecodedPixelBuffer(unittest.TestCase):
    def test_to_array(self):
        data = np.arange(8, dtype="<u2").tobytes()
        buf = DecodedPixelBuffer(
            TextureFormat.BC5, 2, 2, ChannelLayout.LUMINANCE_ALPHA, PixelPacking.RG16, data
        )
        self.assertEqual(len(buf), 16)
        arr = buf.to_array()
        self.assertEqual(arr.shape, (2, 2, 2))
        self.assertEqual(arr[1, 1].tolist(), [6, 7])
        self.assertFalse(arr.flags.writeable)


class TestMipUpload(unittest.TestCase):
    def test_available(self):
        mip = MipDescriptor(4, 4, 16)
        self.assertTrue(MipUpload(0, mip, native=NativeUpload(TextureFormat.BC7)).available)
        self.assertFalse(MipUpload(0, mip, error="TruncatedPayloadError: short").available)


if __name__ == "__main__":
    unittest.main(verbosity=2)
