import pytest

from protogen.errors import (
    InvalidIdentifierError,
    MessageAlreadyNestedError,
    MessagePinnedError,
    RootElementAlreadyExistsError,
)
from protogen.generator.proto_generator import generate_proto
from protogen.models import (
    ANY,
    ANY_TYPE_IMPORT,
    EnumBuilder,
    MessageBuilder,
    ProtoFileBuilder,
    ProtoImport,
    ScalarType,
    ServiceBuilder,
)

EMPTY_PROTO = 'syntax = "proto3";\n\n'


class TestProtoFileBuilder:
    def test_proto3_syntax(self):
        proto_file = ProtoFileBuilder().build()
        assert proto_file.syntax == "proto3"
        assert proto_file.package == ""
        assert proto_file.comment == ""
        assert proto_file.messages == ()
        assert proto_file.enums == ()
        assert proto_file.services == ()
        assert proto_file.imports == ()

    def test_add_message(self):
        proto_file = ProtoFileBuilder().with_message(MessageBuilder("MyTestMessage")).build()
        assert [m.name for m in proto_file.messages] == ["MyTestMessage"]

    def test_add_enum(self):
        proto_file = ProtoFileBuilder().with_enum(EnumBuilder("TestEnum")).build()
        assert [e.name for e in proto_file.enums] == ["TestEnum"]

    def test_add_service(self):
        proto_file = ProtoFileBuilder().with_service(ServiceBuilder("TestService")).build()
        assert [s.name for s in proto_file.services] == ["TestService"]

    def test_addition_order_is_kept(self):
        proto_file = (
            ProtoFileBuilder()
            .with_message(MessageBuilder("Zeta"))
            .with_message(MessageBuilder("Alpha"))
            .with_message(MessageBuilder("Mu"))
            .build()
        )
        assert [m.name for m in proto_file.messages] == ["Zeta", "Alpha", "Mu"]

    def test_duplicate_message_name(self):
        builder = ProtoFileBuilder().with_message(MessageBuilder("MyTestMessage"))
        with pytest.raises(RootElementAlreadyExistsError):
            builder.with_message(MessageBuilder("MyTestMessage"))

    def test_enum_name_collides_with_message(self):
        builder = ProtoFileBuilder().with_message(MessageBuilder("MyTestMessage"))
        with pytest.raises(RootElementAlreadyExistsError):
            builder.with_enum(EnumBuilder("MyTestMessage"))

    def test_service_name_collides_with_message(self):
        builder = ProtoFileBuilder().with_message(MessageBuilder("MyTestObject"))
        with pytest.raises(RootElementAlreadyExistsError):
            builder.with_service(ServiceBuilder("MyTestObject"))

    def test_message_name_collides_with_service(self):
        builder = ProtoFileBuilder().with_service(ServiceBuilder("Thing"))
        with pytest.raises(RootElementAlreadyExistsError) as exc_info:
            builder.with_message(MessageBuilder("Thing").build())
        assert exc_info.value.name == "Thing"

    def test_rejected_message_builder_is_not_built(self):
        child = MessageBuilder("Child").build()
        builder = ProtoFileBuilder().with_enum(EnumBuilder("Thing"))
        with pytest.raises(RootElementAlreadyExistsError):
            builder.with_message(MessageBuilder("Thing").with_nested_message(child))
        assert child.parent is None

    def test_rejected_element_is_not_added(self):
        builder = ProtoFileBuilder().with_enum(EnumBuilder("Thing"))
        with pytest.raises(RootElementAlreadyExistsError):
            builder.with_service(ServiceBuilder("Thing"))
        assert builder.build().services == ()

    def test_add_import(self):
        proto_file = ProtoFileBuilder().with_import("protos/test.proto").build()
        assert len(proto_file.imports) == 1
        assert proto_file.imports[0].path == "protos/test.proto"
        assert proto_file.imports[0].public is False

    def test_add_public_import(self):
        proto_file = ProtoFileBuilder().with_import("protos/test.proto", True).build()
        assert proto_file.imports[0].public is True

    def test_add_import_object(self):
        proto_file = ProtoFileBuilder().add_import(ProtoImport("a.proto")).build()
        assert proto_file.imports == (ProtoImport("a.proto"),)

    def test_set_package(self):
        proto_file = ProtoFileBuilder().with_package("ch.kapferer.stefan").build()
        assert proto_file.package == "ch.kapferer.stefan"

    def test_invalid_package(self):
        with pytest.raises(InvalidIdentifierError):
            ProtoFileBuilder().with_package("demo.")

    def test_set_comment(self):
        proto_file = ProtoFileBuilder().with_comment("test-comment").build()
        assert proto_file.comment == "test-comment"

    def test_collections_are_snapshots(self):
        builder = ProtoFileBuilder().with_message(MessageBuilder("First"))
        proto_file = builder.build()
        builder.with_message(MessageBuilder("Second")).with_import("x.proto")
        assert len(proto_file.messages) == 1
        assert proto_file.imports == ()


class TestAnyTypeImport:
    def test_any_field_adds_import(self):
        message = MessageBuilder("TestMessage").with_field(ANY, "anyField").build()
        proto_file = ProtoFileBuilder().with_message(message).build()
        assert proto_file.messages[0].fields[0].type_name == "google.protobuf.Any"
        assert [i.path for i in proto_file.imports] == [ANY_TYPE_IMPORT]

    def test_any_field_in_nested_message_adds_import(self):
        nested = MessageBuilder("NestedType").with_field(ANY, "anyField").build()
        message = (
            MessageBuilder("TestMessage")
            .with_field(nested, "messageField")
            .with_nested_message(nested)
            .build()
        )
        proto_file = ProtoFileBuilder().with_message(message).build()
        assert [i.path for i in proto_file.imports] == [ANY_TYPE_IMPORT]

    def test_any_field_deeply_nested(self):
        inner = MessageBuilder("Inner").with_field(ANY, "payload").build()
        middle = MessageBuilder("Middle").with_nested_message(inner).build()
        outer = MessageBuilder("Outer").with_nested_message(middle).build()
        proto_file = ProtoFileBuilder().with_message(outer).build()
        assert [i.path for i in proto_file.imports] == [ANY_TYPE_IMPORT]

    def test_import_added_once_for_many_any_fields(self):
        first = MessageBuilder("First").with_field(ANY, "a").with_field(ANY, "b").build()
        second = MessageBuilder("Second").with_field(ANY, "c", repeated=True).build()
        proto_file = (
            ProtoFileBuilder()
            .with_import("other.proto")
            .with_message(first)
            .with_message(second)
            .build()
        )
        assert [i.path for i in proto_file.imports] == ["other.proto", ANY_TYPE_IMPORT]

    def test_manual_import_is_not_duplicated(self):
        message = MessageBuilder("TestMessage").with_field(ANY, "anyField").build()
        proto_file = (
            ProtoFileBuilder()
            .with_message(message)
            .with_import("google/protobuf/any.proto")
            .build()
        )
        assert [i.path for i in proto_file.imports] == [ANY_TYPE_IMPORT]

    def test_no_import_without_any_field(self):
        message = MessageBuilder("TestMessage").with_field(ScalarType.STRING, "name").build()
        proto_file = ProtoFileBuilder().with_message(message).build()
        assert proto_file.imports == ()

    def test_building_twice_adds_import_once_each_time(self):
        builder = ProtoFileBuilder().with_message(MessageBuilder("M").with_field(ANY, "a"))
        assert len(builder.build().imports) == 1
        assert len(builder.build().imports) == 1


class TestProtoFileSerialization:
    def test_str_renders_proto(self):
        assert str(ProtoFileBuilder().build()) == EMPTY_PROTO

    def test_render(self):
        assert ProtoFileBuilder().build().render() == EMPTY_PROTO

    def test_persist(self, tmp_path):
        target = tmp_path / "persisted.proto"
        written = ProtoFileBuilder().build().persist(target)
        assert written == str(target)
        assert target.read_text(encoding="utf-8") == EMPTY_PROTO


class TestRootMessages:
    def test_nested_message_cannot_be_root(self):
        inner = MessageBuilder("Inner").build()
        outer = MessageBuilder("Outer").with_nested_message(inner).build()
        builder = ProtoFileBuilder().with_message(outer)

        with pytest.raises(MessageAlreadyNestedError):
            builder.with_message(inner)

        proto_file = builder.build()
        assert [m.name for m in proto_file.messages] == ["Outer"]
        assert "\nmessage Inner" not in generate_proto(proto_file)

    def test_rejected_nested_message_does_not_claim_name(self):
        inner = MessageBuilder("Inner").build()
        MessageBuilder("Outer").with_nested_message(inner).build()
        builder = ProtoFileBuilder()

        with pytest.raises(MessageAlreadyNestedError):
            builder.with_message(inner)

        proto_file = builder.with_message(MessageBuilder("Inner")).build()
        assert [m.name for m in proto_file.messages] == ["Inner"]

    def test_root_message_cannot_be_nested_later(self):
        m = MessageBuilder("M").with_field(ScalarType.STRING, "s").build()
        n = MessageBuilder("N").with_field(m, "m").build()
        proto_file = ProtoFileBuilder().with_message(m).with_message(n).build()
        before = generate_proto(proto_file)

        with pytest.raises(MessagePinnedError):
            MessageBuilder("Outer").with_nested_message(m)

        assert m.is_pinned
        assert m.parent is None
        assert generate_proto(proto_file) == before
        assert "  M m = 1;\n" in before

    def test_root_message_pinned_before_build(self):
        m = MessageBuilder("M").build()
        ProtoFileBuilder().with_message(m)
        with pytest.raises(MessagePinnedError):
            MessageBuilder("Outer").with_nested_message(m)

    def test_pinned_message_blocks_pending_parent_build(self):
        m = MessageBuilder("M").build()
        parent = MessageBuilder("Outer").with_nested_message(m)
        proto_file = ProtoFileBuilder().with_message(m).build()
        before = generate_proto(proto_file)

        with pytest.raises(MessagePinnedError):
            parent.build()

        assert m.parent is None
        assert generate_proto(proto_file) == before

    def test_field_type_referenced_by_built_file_is_pinned(self):
        detail = MessageBuilder("Detail").build()
        order = MessageBuilder("Order").with_field(detail, "detail").build()
        proto_file = ProtoFileBuilder().with_message(order).build()
        before = generate_proto(proto_file)

        with pytest.raises(MessagePinnedError):
            MessageBuilder("Wrapper").with_nested_message(detail)

        assert generate_proto(proto_file) == before

    def test_rpc_message_referenced_by_built_file_is_pinned(self):
        request = MessageBuilder("Request").build()
        response = MessageBuilder("Response").build()
        service = ServiceBuilder("Api").with_rpc("Call", request, response)
        ProtoFileBuilder().with_service(service).build()

        assert request.is_pinned
        assert response.is_pinned
        with pytest.raises(MessagePinnedError):
            MessageBuilder("Wrapper").with_nested_message(response)

    def test_nested_message_can_be_used_before_file_build(self):
        inner = MessageBuilder("Inner").build()
        holder = MessageBuilder("Holder").with_field(inner, "inner").build()
        outer = MessageBuilder("Outer").with_nested_message(inner).build()

        proto_file = ProtoFileBuilder().with_message(outer).with_message(holder).build()

        assert "  Outer.Inner inner = 1;\n" in generate_proto(proto_file)
