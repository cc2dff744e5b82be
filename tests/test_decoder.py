from dataclasses import replace

import pytest

from nft_market_listener.decoder import EVENT_SIGNATURES, classify, decode, event_signature
from nft_market_listener.errors import DecodeError
from nft_market_listener.types import EventKind, RawLog
from synthetic import ERC20, NFT_CONTRACT, TX_HASH, make_log


def test_event_signature_is_keccak_of_declaration() -> None:
    assert (
        event_signature("Transfer(address,address,uint256)")
        == "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
    )
    assert EVENT_SIGNATURES[EventKind.LIST_NFT] == event_signature("ListNFT(address,uint256,uint256,address)")
    assert EVENT_SIGNATURES[EventKind.LIST_NFT] != EVENT_SIGNATURES[EventKind.BUY_NFT]


def test_decode_list_nft_example() -> None:
    log = make_log(EventKind.LIST_NFT, nft_id=7, price=1000000000000000000)

    kind = classify(log)
    assert kind is EventKind.LIST_NFT

    record = decode(log, kind)
    assert record.nft_address == NFT_CONTRACT
    assert record.nft_id == 7
    assert record.price == 1000000000000000000
    assert record.erc20_address == ERC20
    assert record.block_number == 100
    assert record.transaction_hash == TX_HASH
    assert record.log_index == 0


def test_decode_buy_nft() -> None:
    log = make_log(EventKind.BUY_NFT, nft_id=42, price=5, log_index=3)
    record = decode(log, classify(log))
    assert record.kind is EventKind.BUY_NFT
    assert (record.nft_id, record.price, record.log_index) == (42, 5, 3)


@pytest.mark.parametrize(
    "nft_id,price",
    [(0, 0), (1, 1), (2**256 - 1, 2**256 - 1), (123456789, 10**30)],
)
def test_decode_reproduces_encoded_values(nft_id: int, price: int) -> None:
    nft = "0x" + "00" * 19 + "01"
    erc20 = "0x" + "ff" * 20
    record = decode(make_log(nft_address=nft, nft_id=nft_id, price=price, erc20_address=erc20), EventKind.LIST_NFT)
    assert record.nft_id == nft_id
    assert record.price == price
    assert record.nft_address == nft
    assert record.erc20_address == erc20
    assert len(bytes.fromhex(record.erc20_address[2:])) == 20


def test_classify_is_case_insensitive() -> None:
    log = make_log(signature=EVENT_SIGNATURES[EventKind.BUY_NFT].upper().replace("0X", "0x"))
    assert classify(log) is EventKind.BUY_NFT


def test_classify_discards_unknown_signature() -> None:
    approval = event_signature("Approval(address,address,uint256)")
    assert classify(make_log(signature=approval)) is None


def test_classify_discards_log_without_topics() -> None:
    log = RawLog(address="0x", topics=(), data="0x", block_number=1, transaction_hash="0x", log_index=0)
    assert classify(log) is None


def test_decode_rejects_short_data() -> None:
    log = make_log()
    short = replace(log, data=log.data[:100])
    with pytest.raises(DecodeError):
        decode(short, EventKind.LIST_NFT)


def test_decode_rejects_missing_topics() -> None:
    log = make_log()
    truncated = replace(log, topics=log.topics[:2])
    with pytest.raises(DecodeError):
        decode(truncated, EventKind.LIST_NFT)


def test_decode_rejects_non_hex_data() -> None:
    log = make_log()
    garbage = replace(log, data="0xzz" + log.data[4:])
    with pytest.raises(DecodeError):
        decode(garbage, EventKind.LIST_NFT)


def test_erc20_address_is_low_20_bytes_of_second_word() -> None:
    # Worked example: a second word of 0x000...000BBB...2 decodes to 0xBBB...2,
    # so the address is read from data bytes [44, 64), not [32, 52).
    log = make_log()
    assert log.data[2 + 64 : 2 + 64 + 24] == "0" * 24
    assert decode(log, EventKind.LIST_NFT).erc20_address == ERC20

    dirty_padding = replace(log, data=log.data[:66] + "ee" * 12 + ERC20[2:])
    assert decode(dirty_padding, EventKind.LIST_NFT).erc20_address == ERC20
