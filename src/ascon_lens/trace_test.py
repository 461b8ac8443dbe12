import dataclasses

import pytest

from ascon_lens.aead import decrypt, encrypt
from ascon_lens.codec import word_to_bytes, xor_bytes
from ascon_lens.errors import InvalidKeyLength, TagInvalid
from ascon_lens.permutation import permute
from ascon_lens.state import AsconState
from ascon_lens.state_snapshot import Phase, Substep
from ascon_lens.trace import begin_trace, current_tracer, emit, end_trace, tracing, with_trace
from ascon_lens.variants import ASCON_128A

KEY = bytes(range(16))
NONCE = bytes(range(16))

# One initialization or finalization: a boundary snapshot, 12 rounds of 3 layers, another boundary snapshot.
P12_PHASE = 1 + 12 * 3 + 1
P6 = 6 * 3


def phases(trace):
    return [s.phase for s in trace]


class TestTracer:
    """Test suite for the tracer lifecycle"""

    def test_no_tracer_records_nothing(self):
        """Test emit is a no-op without an active tracer"""
        assert current_tracer() is None
        emit(AsconState.zero(), Phase.INIT, Substep.LOAD_STATE)
        encrypt(b"abc", KEY, NONCE)
        assert current_tracer() is None

    def test_begin_and_end(self):
        """Test explicit begin/end returns an immutable sequence"""
        tracer = begin_trace()
        assert current_tracer() is tracer
        emit(AsconState.zero(), Phase.INIT, Substep.LOAD_STATE)
        trace = end_trace(tracer)
        assert current_tracer() is None
        assert isinstance(trace, tuple)
        assert len(trace) == 1
        assert tracer.closed

    def test_record_after_end(self):
        """Test a finished trace cannot grow"""
        tracer = begin_trace()
        end_trace(tracer)
        with pytest.raises(RuntimeError, match="already ended"):
            tracer.record(AsconState.zero(), Phase.INIT, Substep.LOAD_STATE)

    def test_nested_traces_shadow(self):
        """Test an inner trace captures events until it ends"""
        with tracing() as outer:
            emit(AsconState.zero(), Phase.INIT, Substep.LOAD_STATE)
            with tracing() as inner:
                emit(AsconState.zero(), Phase.INIT, Substep.KEY_MIX)
            emit(AsconState.zero(), Phase.INIT, Substep.KEY_MIX)
        assert len(inner) == 1
        assert len(outer) == 2

    def test_versions_increase_by_one(self):
        """Test state_version starts at 1 and increments per snapshot"""
        trace = with_trace(encrypt, b"abc", KEY, NONCE).trace
        assert [s.state_version for s in trace] == list(range(1, len(trace) + 1))

    def test_snapshots_are_frozen(self):
        """Test snapshots cannot be modified"""
        trace = with_trace(encrypt, b"abc", KEY, NONCE).trace
        with pytest.raises(dataclasses.FrozenInstanceError):
            trace[0].words = (0, 0, 0, 0, 0)

    def test_tracing_does_not_change_results(self):
        """Test traced and untraced runs agree"""
        traced = with_trace(encrypt, b"Hello, ASCON!", KEY, NONCE, b"ASCON")
        assert traced.result == encrypt(b"Hello, ASCON!", KEY, NONCE, b"ASCON")

    def test_cipher_error_keeps_trace(self):
        """Test a rejected decryption returns its error together with the full trace"""
        traced = with_trace(decrypt, b"\x00", bytes(16), KEY, NONCE)
        assert not traced.ok
        assert isinstance(traced.error, TagInvalid)
        assert traced.result is None
        assert traced.trace[-1].phase is Phase.VERIFY_TAG
        assert len(traced.trace) == P12_PHASE + 1 + 1 + P12_PHASE + 1
        assert current_tracer() is None

    def test_input_error_before_any_snapshot(self):
        """Test a bad key is returned as an error with an empty trace"""
        traced = with_trace(encrypt, b"abc", bytes(15), NONCE)
        assert isinstance(traced.error, InvalidKeyLength)
        assert traced.trace == ()

    def test_successful_run_is_ok(self):
        """Test a successful run has no error"""
        traced = with_trace(encrypt, b"abc", KEY, NONCE)
        assert traced.ok
        assert traced.error is None

    def test_other_exceptions_propagate(self):
        """Test errors outside the cipher hierarchy propagate and leave no active tracer"""
        with pytest.raises(ValueError, match="Round count"):
            with_trace(permute, AsconState.zero(), 13)
        assert current_tracer() is None


class TestPermutationTrace:
    """Test suite for permutation snapshots"""

    def test_three_snapshots_per_round(self):
        """Test each round records its three layers in order"""
        trace = with_trace(permute, AsconState.zero(), 2).trace
        assert [s.substep for s in trace] == [
            Substep.ADD_CONSTANT, Substep.SUBSTITUTION, Substep.LINEAR_DIFFUSION,
        ] * 2
        assert [s.round_index for s in trace] == [0, 0, 0, 1, 1, 1]

    def test_last_snapshot_matches_result(self):
        """Test the final snapshot is the permutation output"""
        traced = with_trace(permute, AsconState.zero(), 12)
        assert traced.trace[-1].words == traced.result.words

    def test_standalone_phase(self):
        """Test a standalone permutation is labeled as initialization"""
        trace = with_trace(permute, AsconState.zero(), 1).trace
        assert {s.phase for s in trace} == {Phase.INIT}


class TestEncryptTrace:
    """Test suite for the snapshot layout of a traced encryption"""

    def test_counts_without_associated_data(self):
        """Test a one block message: init, domain separation, one block, finalize"""
        trace = with_trace(encrypt, b"ascon", KEY, NONCE).trace
        assert len(trace) == P12_PHASE + 1 + 1 + P12_PHASE
        assert phases(trace).count(Phase.INIT) == P12_PHASE
        assert phases(trace).count(Phase.ABSORB_AD) == 1
        assert phases(trace).count(Phase.PROCESS) == 1
        assert phases(trace).count(Phase.FINALIZE) == P12_PHASE
        assert Phase.VERIFY_TAG not in phases(trace)

    def test_counts_with_associated_data(self):
        """Test one AD block and two message blocks"""
        trace = with_trace(encrypt, b"Hello, ASCON!", KEY, NONCE, b"ASCON").trace
        assert phases(trace).count(Phase.ABSORB_AD) == 1 + P6 + 1
        assert phases(trace).count(Phase.PROCESS) == 1 + P6 + 1
        assert len(trace) == 116

    def test_128a_uses_eight_round_p_b(self):
        """Test the 128-bit rate variant absorbs with p8"""
        trace = with_trace(encrypt, bytes(20), KEY, NONCE, bytes(3), ASCON_128A).trace
        assert phases(trace).count(Phase.ABSORB_AD) == 1 + 8 * 3 + 1
        assert phases(trace).count(Phase.PROCESS) == 1 + 8 * 3 + 1

    def test_phases_are_ordered(self):
        """Test phases never go backwards"""
        order = list(Phase)
        trace = with_trace(encrypt, b"Hello, ASCON!", KEY, NONCE, b"ASCON").trace
        indices = [order.index(s.phase) for s in trace]
        assert indices == sorted(indices)

    def test_boundary_snapshots(self):
        """Test the first and last snapshots of a run"""
        traced = with_trace(encrypt, b"ascon", KEY, NONCE)
        result, trace = traced.result, traced.trace
        first, last = trace[0], trace[-1]
        assert first.substep is Substep.LOAD_STATE
        assert first.words == (0x80400C0600000000, 0x0001020304050607, 0x08090A0B0C0D0E0F,
                               0x0001020304050607, 0x08090A0B0C0D0E0F)
        assert last.substep is Substep.TAG_EXTRACT
        assert last.output_fragment == result.tag

    def test_block_fragments(self):
        """Test encrypt snapshots carry plaintext in and ciphertext out"""
        traced = with_trace(encrypt, b"Hello, ASCON!", KEY, NONCE)
        result, trace = traced.result, traced.trace
        blocks = [s for s in trace if s.substep is Substep.ENCRYPT_BLOCK]
        assert [s.block_index for s in blocks] == [0, 1]
        assert b"".join(s.input_fragment for s in blocks) == b"Hello, ASCON!"
        assert b"".join(s.output_fragment for s in blocks) == result.ciphertext


class TestDecryptTrace:
    """Test suite for plaintext exposure in decryption traces"""

    def setup_method(self):
        self.message = b"Attack at dawn!!"
        self.sealed = encrypt(self.message, KEY, NONCE, b"hdr")

    def test_valid_tag_releases_plaintext_last(self):
        """Test plaintext only appears in the final tag comparison snapshot"""
        traced = with_trace(decrypt, self.sealed.ciphertext, self.sealed.tag, KEY, NONCE, b"hdr")
        result, trace = traced.result, traced.trace
        assert result.plaintext == self.message
        assert trace[-1].phase is Phase.VERIFY_TAG
        assert trace[-1].output_fragment == self.message
        for snapshot in trace[:-1]:
            assert self.message[:8] not in snapshot.output_fragment

    def test_decrypt_block_count(self):
        """Test a block-aligned ciphertext still records an empty final block"""
        traced = with_trace(decrypt, self.sealed.ciphertext, self.sealed.tag, KEY, NONCE, b"hdr")
        trace = traced.trace
        blocks = [s for s in trace if s.substep is Substep.DECRYPT_BLOCK]
        assert [s.block_index for s in blocks] == [0, 1, 2]
        assert blocks[-1].input_fragment == b""

    def test_failed_tag_returns_no_plaintext(self):
        """Test a rejected decryption keeps its trace but no fragment carries plaintext"""
        traced = with_trace(decrypt, self.sealed.ciphertext, bytes(16), KEY, NONCE, b"hdr")

        assert isinstance(traced.error, TagInvalid)
        assert traced.result is None
        assert traced.trace[-1].substep is Substep.TAG_COMPARE
        assert traced.trace[-1].output_fragment == b""
        for snapshot in traced.trace:
            assert self.message[:8] not in snapshot.output_fragment

    def test_trace_holds_key_and_keystream(self):
        """Test state words expose the key and keystream, so a trace is as secret as the key"""
        trace = with_trace(decrypt, self.sealed.ciphertext, bytes(16), KEY, NONCE, b"hdr").trace

        assert trace[0].substep is Substep.LOAD_STATE
        assert word_to_bytes(trace[0].words[1]) + word_to_bytes(trace[0].words[2]) == KEY

        recovered = b""
        for i, snapshot in enumerate(trace):
            if snapshot.substep is Substep.DECRYPT_BLOCK and snapshot.input_fragment:
                keystream = word_to_bytes(trace[i - 1].words[0])[:len(snapshot.input_fragment)]
                recovered += xor_bytes(keystream, snapshot.input_fragment)
        assert recovered == self.message
