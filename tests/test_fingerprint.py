"""Tests for augur.fingerprint - FNV model digest and weight size."""

from __future__ import annotations

import struct

import numpy as np
import pytest
import torch

from augur.contracts import Dataset, Layer, Model
from augur.fingerprint import (
    FNV_OFFSET_BASIS,
    MAX_HASHED_FLOATS,
    FNVHash,
    layer_hash_count,
    model_hash,
    model_weight_size,
)
from tests.helpers import reference_fnv, reference_model_hash


class TestFNVHash:
    """Test the streaming accumulator against known multiply-then-XOR FNV vectors."""

    def test_starts_at_offset_basis(self):
        assert FNVHash().hash == 14695981039346656037
        assert str(FNVHash()) == "14695981039346656037"

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("", 0xCBF29CE484222325),
            ("a", 0xAF63BD4C8601B7BE),
            ("foobar", 0x340D8765A4DDA9C2),
        ],
    )
    def test_known_vectors(self, text, expected):
        fnv = FNVHash()
        fnv.append(text)
        assert fnv.hash == expected

    def test_hexdigest_is_zero_padded(self):
        fnv = FNVHash()
        fnv.append("a")
        assert fnv.hexdigest() == "af63bd4c8601b7be"

    def test_update_is_streaming(self):
        """Absorbing in pieces equals absorbing at once."""
        whole = FNVHash()
        whole.update(b"Dense1" + b"\x00\x01\x02")
        parts = FNVHash()
        parts.update(b"Dense1")
        parts.update(b"\x00\x01\x02")
        assert whole.hash == parts.hash

    def test_float_bytes_are_little_endian_float32(self):
        fnv = FNVHash()
        fnv.append_floats([1.0, 2.0], 2)
        assert fnv.hash == reference_fnv(struct.pack("<2f", 1.0, 2.0))

    def test_append_floats_respects_count(self):
        capped = FNVHash()
        capped.append_floats([1.0, 2.0, 3.0], 2)
        exact = FNVHash()
        exact.append_floats([1.0, 2.0], 2)
        assert capped.hash == exact.hash

    def test_append_floats_none_or_zero_count_is_noop(self):
        fnv = FNVHash()
        fnv.append_floats(None, 4)
        fnv.append_floats([1.0], 0)
        assert fnv.hash == FNV_OFFSET_BASIS

    def test_tensor_numpy_and_list_agree(self):
        values = [0.5, -1.25, 3.0, 1e-3]
        digests = set()
        for buffer in (values, np.asarray(values, dtype=np.float64), torch.tensor(values)):
            fnv = FNVHash()
            fnv.append_floats(buffer, len(values))
            digests.add(fnv.hash)
        assert len(digests) == 1

    def test_multidimensional_tensor_is_flattened(self):
        flat = FNVHash()
        flat.append_floats(torch.arange(6, dtype=torch.float32), 6)
        grid = FNVHash()
        grid.append_floats(torch.arange(6, dtype=torch.float32).reshape(2, 3), 6)
        assert flat.hash == grid.hash

    def test_lone_surrogate_name_is_absorbed(self):
        fnv = FNVHash()
        fnv.append("a\udc80")
        assert fnv.hash == reference_fnv(b"a\xed\xb2\x80")


class TestModelHash:
    """Test model_hash layer traversal and the per-layer cap."""

    def test_empty_model_is_offset_basis(self):
        assert model_hash(Model()) == str(FNV_OFFSET_BASIS)

    def test_surrogate_layer_name_does_not_raise(self):
        model = Model(layers=[Layer(name="enc\udc80", weights=[1.0])])
        assert model_hash(model) != model_hash(Model(layers=[Layer(name="enc", weights=[1.0])]))

    def test_dense_layer_matches_reference(self):
        model = Model(layers=[Layer(name="Dense1", weights=[1.0, 2.0])])
        assert model_hash(model) == reference_model_hash([("Dense1", [1.0, 2.0])])

    def test_extra_weight_changes_digest(self):
        two = Model(layers=[Layer(name="Dense1", weights=[1.0, 2.0])])
        three = Model(layers=[Layer(name="Dense1", weights=[1.0, 2.0, 3.0])])
        assert model_hash(two) != model_hash(three)

    def test_weights_past_cap_are_ignored(self):
        base = [float(i) for i in range(300)]
        changed = base[:256] + [-1.0] * 44
        a = Model(layers=[Layer(name="big", weights=base)])
        b = Model(layers=[Layer(name="big", weights=changed)])
        assert model_hash(a) == model_hash(b)

    def test_weight_inside_cap_changes_digest(self):
        base = [float(i) for i in range(300)]
        changed = list(base)
        changed[255] = -1.0
        a = Model(layers=[Layer(name="big", weights=base)])
        b = Model(layers=[Layer(name="big", weights=changed)])
        assert model_hash(a) != model_hash(b)

    def test_empty_and_missing_weights_hash_name_only(self):
        expected = reference_model_hash([("conv", [])])
        assert model_hash(Model(layers=[Layer(name="conv", weights=[])])) == expected
        assert model_hash(Model(layers=[Layer(name="conv", weights=None)])) == expected

    def test_layer_order_matters(self):
        a = Layer(name="a", weights=[1.0])
        b = Layer(name="b", weights=[2.0])
        assert model_hash(Model(layers=[a, b])) != model_hash(Model(layers=[b, a]))

    def test_custom_cap(self):
        weights = [1.0, 2.0, 3.0, 4.0]
        model = Model(layers=[Layer(name="l", weights=weights)])
        assert model_hash(model, max_floats=2) == reference_model_hash([("l", weights)], max_floats=2)

    def test_digest_ignores_metadata(self):
        a = Model(layers=[Layer(name="l", weights=[1.0])], producer_name="Script")
        b = Model(layers=[Layer(name="l", weights=[1.0])], producer_name="pytorch", ir_version="2")
        assert model_hash(a) == model_hash(b)

    def test_layer_hash_count(self):
        assert layer_hash_count(Layer(name="l", weights=None)) == 0
        assert layer_hash_count(Layer(name="l", weights=[0.0] * 10)) == 10
        assert layer_hash_count(Layer(name="l", weights=torch.zeros(20, 20))) == MAX_HASHED_FLOATS


class TestModelWeightSize:
    """Test model_weight_size sums declared dataset lengths."""

    def test_sums_declared_lengths(self):
        model = Model(
            layers=[
                Layer(name="a", weights=[1.0], datasets=(Dataset("a/w", length=10),)),
                Layer(name="b", weights=[], datasets=(Dataset("b/w", length=0),)),
                Layer(name="c", weights=[9.0] * 3, datasets=(Dataset("c/w", length=5),)),
            ]
        )
        assert model_weight_size(model) == 15

    def test_independent_of_hash_cap(self):
        layer = Layer(
            name="huge",
            weights=[0.0] * 1000,
            datasets=(Dataset("huge/w", shape=(1000,), length=4000),),
        )
        assert model_weight_size(Model(layers=[layer])) == 4000

    def test_multiple_datasets_per_layer(self):
        layer = Layer(name="l", datasets=(Dataset("w", length=64), Dataset("b", length=16)))
        assert model_weight_size(Model(layers=[layer])) == 80

    def test_empty_model(self):
        assert model_weight_size(Model()) == 0
