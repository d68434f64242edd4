"""
Tests for the execute-body encoder and the response envelope decoder.
"""
import json

import pytest

from psdb.codec import (
    ColumnDescriptor,
    ErrorResult,
    QueryResult,
    RowRecord,
    SessionUpdate,
    decode_envelope,
    decode_session,
    encode_execute_body,
)
from psdb.exceptions import CodecError, ProtocolError, UnknownProtocolError

SAMPLE = (
    b'{"result":{"fields":[{"name":"id","type":"INT32","columnLength":11,'
    b'"charset":63,"flags":49667}],"rows":[{"lengths":["1"],"values":"MQ=="}]}}'
)


# -- encoding ---------------------------------------------------------------


def test_encode_splices_session_verbatim():
    """Test that the session bytes are embedded exactly, spacing and order included"""
    session = b'{ "z": 1,  "a": [true, null] }'
    body = encode_execute_body('SELECT 1', session)
    assert body == b'{"query":"SELECT 1","session":{ "z": 1,  "a": [true, null] }}'
    assert json.loads(body) == {'query': 'SELECT 1', 'session': {'z': 1, 'a': [True, None]}}


def test_encode_escapes_query():
    body = encode_execute_body('SELECT "a\\b"\n', b'{}')
    assert json.loads(body)['query'] == 'SELECT "a\\b"\n'


def test_encode_without_session():
    assert encode_execute_body('SELECT 1', None) == b'{"query":"SELECT 1","session":null}'


# -- errors -----------------------------------------------------------------


def test_error_with_message():
    """Test that error.message becomes ProtocolError('boom')"""
    envelope = decode_envelope(b'{"error":{"message":"boom"}}')
    assert envelope == ErrorResult(message='boom')
    exc = envelope.exception()
    assert type(exc) is ProtocolError
    assert str(exc) == 'boom'


def test_error_without_message_is_unknown():
    envelope = decode_envelope(b'{"error":{}}')
    assert isinstance(envelope, ErrorResult)
    assert envelope.message is None
    exc = envelope.exception()
    assert isinstance(exc, UnknownProtocolError)
    assert str(exc) == 'unknown error'


def test_error_takes_precedence_over_result():
    envelope = decode_envelope(
        b'{"error":{"message":"denied"},"result":{"fields":[],"rows":[]}}'
    )
    assert isinstance(envelope, ErrorResult)
    assert envelope.message == 'denied'


def test_error_keeps_session():
    envelope = decode_envelope(b'{"session":{"s":2},"error":{"message":"x"}}')
    assert envelope.session == b'{"s":2}'


# -- results ----------------------------------------------------------------


def test_decode_sample_result():
    """Test the single INT32 column / single row example"""
    envelope = decode_envelope(SAMPLE)
    assert isinstance(envelope, QueryResult)
    assert envelope.columns == (
        ColumnDescriptor(name='id', type='INT32', column_length=11, charset=63, flags=49667),
    )
    assert envelope.rows == (RowRecord(lengths=(1,), values=b'1'),)
    assert envelope.session is None


def test_server_only_field_keys_are_ignored():
    body = (
        b'{"result":{"fields":[{"name":"n","type":"VARCHAR","table":"user",'
        b'"orgTable":"user","database":"app","orgName":"name","columnLength":1020,'
        b'"charset":255,"decimals":2}]}}'
    )
    (column,) = decode_envelope(body).columns
    assert column == ColumnDescriptor(
        name='n', type='VARCHAR', table='user', column_length=1020, charset=255, decimals=2
    )


def test_omitted_zero_values_default():
    (column,) = decode_envelope(b'{"result":{"fields":[{"name":"x"}]}}').columns
    assert column.type == 'NULL_TYPE'
    assert column.table == ''
    assert column.column_length == 0
    assert column.flags == 0


def test_missing_result_is_no_result():
    """Test that an envelope without result, error and session is a codec error"""
    with pytest.raises(CodecError, match='no result'):
        decode_envelope(b'{}')
    with pytest.raises(CodecError, match='no result'):
        decode_envelope(b'{"other":1}')


def test_session_only_envelope():
    envelope = decode_envelope(b'{"session":{"signature":"s"}}')
    assert envelope == SessionUpdate(session=b'{"signature":"s"}')


def test_missing_fields():
    with pytest.raises(CodecError, match='missing fields'):
        decode_envelope(b'{"result":{"rows":[]}}')


def test_missing_rows_is_empty():
    envelope = decode_envelope(b'{"result":{"fields":[{"name":"id","type":"INT64"}]}}')
    assert envelope.rows == ()
    assert len(envelope.columns) == 1


def test_rows_affected_and_insert_id():
    envelope = decode_envelope(
        b'{"result":{"fields":[],"rowsAffected":"3","insertId":"42"}}'
    )
    assert envelope.rows_affected == 3
    assert envelope.insert_id == 42


def test_session_raw_bytes_preserved():
    """Test that the captured session is the exact text of the sub-object"""
    raw = b'{ "signature" : "abc",\n  "vitessSession": {"inTransaction": false} }'
    body = b'{"session": ' + raw + b' , "result": {"fields": []}}'
    envelope = decode_envelope(body)
    assert envelope.session == raw


def test_non_ascii_session_preserved():
    raw = '{"note":"café","esc":"\\u00e9"}'.encode('utf-8')
    envelope = decode_envelope(b'{"session":' + raw + b'}')
    assert envelope.session == raw


def test_non_object_session_is_ignored():
    with pytest.raises(CodecError, match='no result'):
        decode_envelope(b'{"session":null}')


# -- rows -------------------------------------------------------------------


def test_multi_column_row_split():
    body = (
        b'{"result":{"fields":[{"name":"id","type":"INT64"},{"name":"name","type":"VARCHAR"}],'
        b'"rows":[{"lengths":["2","5"],"values":"NDJhbGljZQ=="}]}}'
    )
    (row,) = decode_envelope(body).rows
    assert row.lengths == (2, 5)
    assert row.split() == [b'42', b'alice']


def test_null_length():
    body = (
        b'{"result":{"fields":[{"name":"a"},{"name":"b"}],'
        b'"rows":[{"lengths":["-1","1"],"values":"eA=="}]}}'
    )
    (row,) = decode_envelope(body).rows
    assert row.lengths == (None, 1)
    assert row.split() == [None, b'x']


def test_row_without_values():
    body = b'{"result":{"fields":[{"name":"a"}],"rows":[{"lengths":["0"]}]}}'
    (row,) = decode_envelope(body).rows
    assert row.split() == [b'']


@pytest.mark.parametrize('lengths', [
    '["x"]',
    '["1.5"]',
    '["-2"]',
    '["18446744073709551616"]',
    '[true]',
    '"1"',
])
def test_bad_lengths_abort_decode(lengths):
    """Test that one malformed length fails the whole decode"""
    body = (
        '{"result":{"fields":[{"name":"a"}],"rows":['
        '{"lengths":["1"],"values":"MQ=="},'
        '{"lengths":' + lengths + ',"values":"MQ=="}]}}'
    ).encode()
    with pytest.raises(CodecError):
        decode_envelope(body)


def test_max_uint64_length_is_accepted_by_parser():
    body = b'{"result":{"fields":[],"rows":[{"lengths":["18446744073709551615"],"values":""}]}}'
    with pytest.raises(CodecError, match='exceed'):
        decode_envelope(body)


@pytest.mark.parametrize('values', ['"MQ"', '"M*=="', '123'])
def test_bad_base64(values):
    body = ('{"result":{"fields":[],"rows":[{"lengths":["1"],"values":' + values + '}]}}').encode()
    with pytest.raises(CodecError):
        decode_envelope(body)


def test_lengths_exceeding_values():
    body = b'{"result":{"fields":[],"rows":[{"lengths":["5"],"values":"MQ=="}]}}'
    with pytest.raises(CodecError):
        decode_envelope(body)


def test_row_column_count_mismatch_aborts_decode():
    """Test that a row with fewer values than fields fails the whole envelope"""
    body = (
        b'{"result":{"fields":[{"name":"a","type":"INT32"},{"name":"b","type":"INT32"}],'
        b'"rows":[{"lengths":["1","1"],"values":"MTI="},{"lengths":["1"],"values":"Mw=="}]}}'
    )
    with pytest.raises(CodecError, match='row 1 has 1 values for 2 columns'):
        decode_envelope(body)



# -- malformed JSON -----------------------------------------------------------


@pytest.mark.parametrize('body', [
    b'',
    b'not json',
    b'[1, 2]',
    b'{"result": }',
    b'{"result": {}} trailing',
    b'{"a":1,}',
    b'{"a" 1}',
    b'\xff\xfe',
])
def test_malformed_json(body):
    with pytest.raises(CodecError):
        decode_envelope(body)


def test_whitespace_around_envelope():
    envelope = decode_envelope(b' \n{ "session" : {} }\n')
    assert envelope == SessionUpdate(session=b'{}')


# -- CreateSession --------------------------------------------------------------


def test_decode_session():
    assert decode_session(b'{"session":{"signature":"x"}}') == b'{"signature":"x"}'


def test_decode_session_absent():
    assert decode_session(b'{}') is None


def test_decode_session_malformed():
    with pytest.raises(CodecError):
        decode_session(b'{')
