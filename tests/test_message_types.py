# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import pytest
from amp.messages.exceptions import UnknownTypeError
from amp.messages.types import GENERIC_MESSAGE, MessageType, code_for_name, name_for_code, registered_types


class TestMessageTypes:

    def test_registry(self) -> None:
        assert registered_types() == {
            'IdentityRequest': 0x01,
            'IdentityResponse': 0x11,
            'Ping': 0x12,
            'Pong': 0x13,
            'PeerInstruction': 0x20,
            'StateRoot': 0x30,
            'StateCommitment': 0x31,
            'StateChange': 0x32,
            'PeerMessage': 0x64,
        }

        with pytest.raises(TypeError):
            registered_types()['Ping'] = 0x99  # type: ignore[index]

    def test_bijection(self) -> None:
        types = registered_types()
        assert len(set(types.values())) == len(types)
        for name, code in types.items():
            assert code_for_name(name_for_code(code)) == code
            assert name_for_code(code_for_name(name)) == name

    def test_code_for_name(self) -> None:
        assert code_for_name('Ping') is MessageType.Ping
        assert code_for_name(MessageType.Pong) is MessageType.Pong

        for name in ('NoSuchType', GENERIC_MESSAGE, 'ping', ''):
            with pytest.raises(UnknownTypeError, match='Unknown message type'):
                code_for_name(name)

    @pytest.mark.parametrize('code', [0, 0x02, 0x21, 0xFF, 0x1000, 0xFFFFFFFF, -1])
    def test_unknown_code(self, code: int) -> None:
        assert name_for_code(code) == GENERIC_MESSAGE

    @pytest.mark.parametrize('code', [True, False, 18.0, '18', None, b'\x12'])
    def test_non_integer_code(self, code: object) -> None:
        assert name_for_code(code) == GENERIC_MESSAGE  # type: ignore[arg-type]

    @pytest.mark.parametrize('name', [['Ping'], 0x12, None, b'Ping'])
    def test_non_string_name(self, name: object) -> None:
        with pytest.raises(UnknownTypeError, match='Unknown message type'):
            code_for_name(name)  # type: ignore[arg-type]

    def test_message_type_values(self) -> None:
        assert MessageType.Ping == 0x12
        assert MessageType(0x64) is MessageType.PeerMessage
        assert isinstance(MessageType.Ping, int)
