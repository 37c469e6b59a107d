# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from contextvars import copy_context
from pathlib import Path

import pytest
from amp.configuration import (
    HEADER_SIZE,
    MAGIC_BYTES,
    MAX_MESSAGE_SIZE,
    NAMESPACE,
    VERSION_NUMBER,
    Configuration,
    ConfigurationContext,
    ConfigurationError,
    current_configuration,
)
from amp.configuration.schema import RelaxNGValidator, configuration_validator
from amp.messages import Message


class TestConfiguration:

    def test_defaults(self) -> None:
        configuration = Configuration()
        assert configuration.magic == MAGIC_BYTES == 0xC0D3F33D
        assert configuration.version == VERSION_NUMBER
        assert configuration.max_message_size == MAX_MESSAGE_SIZE
        assert configuration.max_payload_size == MAX_MESSAGE_SIZE - HEADER_SIZE

        with pytest.raises(AttributeError):
            configuration.magic = 1  # type: ignore[misc]

    def test_validation(self) -> None:
        with pytest.raises(ConfigurationError, match='out of range'):
            Configuration(magic=2**32)

        with pytest.raises(ConfigurationError, match='out of range'):
            Configuration(version=-1)

        with pytest.raises(ConfigurationError, match='expected an integer'):
            Configuration(version='1')  # type: ignore[arg-type]

        with pytest.raises(ConfigurationError, match='cannot be smaller than the header size'):
            Configuration(max_message_size=HEADER_SIZE - 1)

        assert Configuration(max_message_size=HEADER_SIZE).max_payload_size == 0

    def test_from_string(self) -> None:
        document = f"""<?xml version="1.0" encoding="UTF-8"?>
            <configuration xmlns="{NAMESPACE}">
              <!-- protocol family and revision -->
              <magic>0x01020304</magic>
              <version>3</version>
              <max-message-size>1024</max-message-size>
            </configuration>
        """
        configuration = Configuration.from_string(document)
        assert configuration == Configuration(magic=0x01020304, version=3, max_message_size=1024)
        assert Configuration.from_string(document.encode()) == configuration

        # all elements are optional and can appear in any order
        document = f'<configuration xmlns="{NAMESPACE}"><max-message-size>512</max-message-size><version>2</version></configuration>'
        assert Configuration.from_string(document) == Configuration(version=2, max_message_size=512)
        assert Configuration.from_string(f'<configuration xmlns="{NAMESPACE}"/>') == Configuration()

    def test_invalid_documents(self) -> None:
        with pytest.raises(ConfigurationError, match='Cannot parse the configuration document'):
            Configuration.from_string('<configuration')

        with pytest.raises(ConfigurationError, match='Invalid configuration document'):
            Configuration.from_string('<configuration><version>1</version></configuration>')  # missing namespace

        with pytest.raises(ConfigurationError, match='Invalid configuration document'):
            Configuration.from_string(f'<configuration xmlns="{NAMESPACE}"><unknown>1</unknown></configuration>')

        with pytest.raises(ConfigurationError, match='Invalid version value in the configuration document'):
            Configuration.from_string(f'<configuration xmlns="{NAMESPACE}"><version>one</version></configuration>')

        with pytest.raises(ConfigurationError, match='cannot be smaller than the header size'):
            Configuration.from_string(f'<configuration xmlns="{NAMESPACE}"><max-message-size>16</max-message-size></configuration>')

    def test_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / 'amp.xml'
        path.write_text(f'<configuration xmlns="{NAMESPACE}"><magic>0xCAFEBABE</magic></configuration>')
        assert Configuration.from_file(path) == Configuration(magic=0xCAFEBABE)

        path.write_text('not xml')
        with pytest.raises(ConfigurationError):
            Configuration.from_file(path)

        with pytest.raises(OSError):
            Configuration.from_file(tmp_path / 'missing.xml')

    def test_schema_validator(self) -> None:
        validator = configuration_validator()
        assert validator is configuration_validator()
        assert validator == RelaxNGValidator('amp.rng')
        assert validator != 'amp.rng'
        assert hash(validator) == hash(RelaxNGValidator('amp.rng'))


class TestConfigurationContext:

    def test_context(self) -> None:
        default = current_configuration()
        assert default == Configuration()

        custom = Configuration(version=5)
        with ConfigurationContext(custom) as context:
            assert context.configuration is custom
            assert current_configuration() is custom
            assert Message().version == 5
            with ConfigurationContext(Configuration(version=6)):
                assert current_configuration().version == 6
            assert current_configuration() is custom

        assert current_configuration() == default
        assert Message().version == VERSION_NUMBER

    def test_reentry(self) -> None:
        context = ConfigurationContext(Configuration(version=5))
        with context, pytest.raises(RuntimeError, match='already active'):
            context.__enter__()
        assert current_configuration() == Configuration()

        # the context can be reused after it exits
        with context:
            assert current_configuration().version == 5

    def test_isolation(self) -> None:
        def run() -> int:
            with ConfigurationContext(Configuration(version=9)):
                return current_configuration().version

        assert copy_context().run(run) == 9
        assert current_configuration().version == VERSION_NUMBER

    def test_explicit_configuration(self) -> None:
        with ConfigurationContext(Configuration(version=5)):
            message = Message(configuration=Configuration(version=7))
        assert message.version == 7
        assert message.configuration.version == 7
