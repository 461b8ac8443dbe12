from typing import Optional

from fastapi import FastAPI, APIRouter, HTTPException
from fastapi.responses import JSONResponse
import structlog

from ascon_lens import aead
from ascon_lens.codec import b64_encode, bytes_to_text, hex_to_bytes, text_to_bytes
from ascon_lens.errors import AsconError, InvalidInput, TagInvalid
from ascon_lens.permutation import ROTATIONS, ROUND_CONSTANTS, SBOX
from ascon_lens.trace import with_trace
from ascon_lens.variants import VARIANTS, AsconVariant, get_variant

from . import models

log = structlog.get_logger(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.JSONRenderer(indent=2),
    ],
)

DEMO_MESSAGE = "Hello, ASCON!"
DEMO_KEY = bytes(range(16))
DEMO_NONCE = bytes(range(16))
DEMO_AD = b"ASCON"

# Create the FastAPI app
app = FastAPI(title="Ascon Visualizer API")

# Create the router for API endpoints
router = APIRouter()


def error_response(e: AsconError) -> HTTPException:
    """Map core errors to HTTP errors, keeping malformed input and failed authentication apart."""
    if isinstance(e, TagInvalid):
        status_code = 403
    elif isinstance(e, InvalidInput):
        status_code = 400
    else:
        status_code = 500
    return HTTPException(status_code=status_code, detail=error_detail(e).model_dump())


def error_detail(e: AsconError) -> models.ErrorDetail:
    return models.ErrorDetail(kind=str(e.kind), message=str(e))


def resolve_params(req: models.CipherParams) -> tuple[bytes, bytes, bytes, AsconVariant]:
    return (
        hex_to_bytes(req.key_hex),
        hex_to_bytes(req.nonce_hex),
        hex_to_bytes(req.associated_data_hex),
        get_variant(req.variant),
    )


def resolve_plaintext(plaintext: Optional[str], plaintext_hex: Optional[str]) -> bytes:
    if plaintext_hex is not None:
        return hex_to_bytes(plaintext_hex)
    return text_to_bytes(plaintext or "")


def build_encrypt_response(variant: AsconVariant, result: aead.EncryptResult) -> models.EncryptResponse:
    return models.EncryptResponse(
        alg=variant.name,
        ciphertext_hex=result.ciphertext.hex(),
        ciphertext_b64=b64_encode(result.ciphertext),
        tag_hex=result.tag.hex(),
    )


@router.post("/encrypt", response_model=models.EncryptResponse)
def encrypt(req: models.EncryptRequest):
    """ Encrypt and authenticate the given plaintext. """
    try:
        key, nonce, ad, variant = resolve_params(req)
        plaintext = resolve_plaintext(req.plaintext, req.plaintext_hex)
        result = aead.encrypt(plaintext, key, nonce, ad, variant)
    except AsconError as e:
        log.info("encrypt rejected", error=str(e))
        raise error_response(e)

    log.info(
        "encrypted",
        alg=variant.name,
        ad_len=len(ad),
        plaintext_len=len(plaintext),
        ciphertext_hex=result.ciphertext.hex(),
    )
    return build_encrypt_response(variant, result)


@router.post("/decrypt", response_model=models.DecryptResponse)
def decrypt(req: models.DecryptRequest):
    """ Verify the tag and decrypt. A failed tag check returns 403 and no plaintext. """
    try:
        key, nonce, ad, variant = resolve_params(req)
        result = aead.decrypt(hex_to_bytes(req.ciphertext_hex), hex_to_bytes(req.tag_hex), key, nonce, ad, variant)
    except AsconError as e:
        log.warning("decrypt rejected", error=str(e))
        raise error_response(e)

    log.info("decrypted", alg=variant.name, plaintext_len=len(result.plaintext))
    return models.DecryptResponse(
        alg=variant.name,
        plaintext_hex=result.plaintext.hex(),
        plaintext_text=bytes_to_text(result.plaintext),
    )


@router.post("/trace", response_model=models.TraceResponse)
def trace(req: models.TraceRequest):
    """ Run an encryption or decryption and return every state snapshot.

    A decryption that fails authentication still returns its snapshots, with
    tag_valid false and no plaintext, under status 403. Snapshots hold the full
    state, key and keystream included.
    """
    try:
        key, nonce, ad, variant = resolve_params(req)
        if req.mode == "encrypt":
            plaintext = resolve_plaintext(req.plaintext, req.plaintext_hex)
        elif req.ciphertext_hex is None or req.tag_hex is None:
            raise HTTPException(status_code=422, detail="ciphertext_hex and tag_hex are required to trace a decryption")
        else:
            ciphertext, tag = hex_to_bytes(req.ciphertext_hex), hex_to_bytes(req.tag_hex)
    except AsconError as e:
        log.info("trace rejected", mode=req.mode, error=str(e))
        raise error_response(e)

    if req.mode == "encrypt":
        traced = with_trace(aead.encrypt, plaintext, key, nonce, ad, variant)
    else:
        traced = with_trace(aead.decrypt, ciphertext, tag, key, nonce, ad, variant)

    if traced.error is not None and not isinstance(traced.error, TagInvalid):
        log.info("trace rejected", mode=req.mode, error=str(traced.error))
        raise error_response(traced.error)

    response = models.TraceResponse(
        alg=variant.name,
        mode=req.mode,
        snapshots=[models.SnapshotModel.from_snapshot(s) for s in traced.trace],
    )
    if isinstance(traced.error, TagInvalid):
        log.warning("traced decrypt failed authentication", alg=variant.name, snapshots=len(traced.trace))
        response.tag_valid = False
        response.error = error_detail(traced.error)
        return JSONResponse(status_code=403, content=response.model_dump(mode="json"))

    if isinstance(traced.result, aead.EncryptResult):
        response.ciphertext_hex = traced.result.ciphertext.hex()
        response.tag_hex = traced.result.tag.hex()
    else:
        response.tag_valid = True
        response.plaintext_hex = traced.result.plaintext.hex()
    return response


@router.get("/demo", response_model=models.TraceResponse)
def demo():
    """ Traced encryption of a fixed message, key and nonce. """
    req = models.TraceRequest(
        key_hex=DEMO_KEY.hex(),
        nonce_hex=DEMO_NONCE.hex(),
        associated_data_hex=DEMO_AD.hex(),
        plaintext=DEMO_MESSAGE,
    )
    return trace(req)


@router.get("/parameters", response_model=models.ParametersResponse)
def parameters():
    """ Permutation constants and the supported variants. """
    return models.ParametersResponse(
        round_constants=list(ROUND_CONSTANTS),
        sbox=list(SBOX),
        rotations=[list(pair) for pair in ROTATIONS],
        variants=[
            models.VariantModel(
                name=v.name,
                key_size=v.key_size,
                nonce_size=v.nonce_size,
                tag_size=v.tag_size,
                rate=v.rate,
                rounds_a=v.rounds_a,
                rounds_b=v.rounds_b,
                iv_hex=f"{v.iv:016x}",
            )
            for v in VARIANTS.values()
        ],
    )


# Include the router in the app (after all routes are defined)
app.include_router(router, prefix="/api")
