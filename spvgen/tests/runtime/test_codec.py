"""Tests for generated operation serializers and deserializers"""

# pylint: disable=redefined-outer-name,unused-variable,expression-not-assigned,singleton-comparison

import os

import pytest

from spvgen.generator import GeneratorOptions, load, render
from spvgen.runtime import (
    UNKNOWN_LOC,
    ArrayAttr,
    CodecContext,
    DeserializationError,
    IntegerAttr,
    SerializationError,
    Type,
    UnitAttr,
    Value,
    deserialize_words,
    serialize_operations,
)

FILE_DIR = os.path.dirname(os.path.realpath(__file__))

F32 = Type("f32")


def gen_code(file_name):
    gbl = globals().copy()

    schema = load(file_name)
    generated_code = render(schema, GeneratorOptions(runtime_import="spvgen.runtime"))
    exec(generated_code, gbl)
    return gbl


def header(word_count, opcode):
    return (word_count << 16) | opcode


def encoding_context():
    """Type f32 is id 1, values lhs and rhs are ids 3 and 4."""
    ctx = CodecContext()
    ctx.register_type(F32)
    lhs = Value(F32)
    rhs = Value(F32)
    ctx.register_value(lhs, 3)
    ctx.register_value(rhs, 4)
    return ctx, lhs, rhs


def decoding_context(lhs, rhs):
    ctx = CodecContext()
    ctx.register_type(F32, 1)
    ctx.register_value(lhs, 3)
    ctx.register_value(rhs, 4)
    return ctx


def describe_serialization():
    def encodes_result_then_operands(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")
        Add = gen["Add"]
        ctx, lhs, rhs = encoding_context()

        op = Add(operands=[lhs, rhs], result_types=[F32])
        gen["dispatch_to_autogen_serialization"](ctx, op)

        expect(ctx.functions) == [header(5, 12), 1, 5, 3, 4]
        expect(ctx.find_value_id(op.result)) == 5
        expect(ctx.annotations) == []

    def encodes_operation_without_result(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")
        Nop = gen["Nop"]
        ctx = CodecContext()

        gen["dispatch_to_autogen_serialization"](ctx, Nop())

        expect(ctx.binary()) == [header(1, 0)]

    def encodes_scalar_and_enum_attributes(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")
        Barrier = gen["Barrier"]
        Scope = gen["Scope"]
        ctx = CodecContext()

        op = Barrier(attributes={"scope": IntegerAttr(Scope.Workgroup), "semantics": IntegerAttr(-1)})
        gen["dispatch_to_autogen_serialization"](ctx, op)

        expect(ctx.functions) == [header(3, 224), 2, 0xFFFFFFFF]

    def encodes_array_attribute_one_word_per_element(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")
        Extract = gen["Extract"]
        ctx, lhs, _ = encoding_context()

        op = Extract(
            operands=[lhs],
            attributes={"indices": ArrayAttr([IntegerAttr(0), IntegerAttr(2)])},
            result_types=[F32],
        )
        gen["dispatch_to_autogen_serialization"](ctx, op)

        expect(ctx.functions) == [header(6, 81), 1, 5, 3, 0, 2]

    def skips_absent_optional_attribute(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")
        Store = gen["Store"]
        Access = gen["Access"]
        ctx, lhs, rhs = encoding_context()

        gen["dispatch_to_autogen_serialization"](ctx, Store(operands=[lhs, rhs]))
        expect(ctx.functions) == [header(3, 62), 3, 4]

        ctx.functions.clear()
        op = Store(operands=[lhs, rhs], attributes={"access": IntegerAttr(Access.Read | Access.Write)})
        gen["dispatch_to_autogen_serialization"](ctx, op)
        expect(ctx.functions) == [header(4, 62), 3, 4, 3]

    def encodes_every_variadic_operand(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")
        Call = gen["Call"]
        ctx, lhs, rhs = encoding_context()

        op = Call(operands=[lhs, rhs, lhs], attributes={"callee": IntegerAttr(7)}, result_types=[F32])
        gen["dispatch_to_autogen_serialization"](ctx, op)
        expect(ctx.functions) == [header(7, 57), 1, 5, 7, 3, 4, 3]

        ctx.functions.clear()
        op = Call(attributes={"callee": IntegerAttr(7)}, result_types=[F32])
        gen["dispatch_to_autogen_serialization"](ctx, op)
        expect(ctx.functions) == [header(4, 57), 1, 6, 7]

    def emits_remaining_attributes_as_decorations(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")
        Add = gen["Add"]
        ctx, lhs, rhs = encoding_context()

        op = Add(
            operands=[lhs, rhs],
            attributes={"binding": IntegerAttr(2), "no_contraction": UnitAttr()},
            result_types=[F32],
        )
        gen["dispatch_to_autogen_serialization"](ctx, op)

        expect(ctx.annotations) == [header(4, 71), 5, 33, 2, header(3, 71), 5, 42]
        expect(ctx.binary()) == [*ctx.annotations, header(5, 12), 1, 5, 3, 4]

    def does_not_decorate_inline_attributes(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")
        Extract = gen["Extract"]
        ctx, lhs, _ = encoding_context()

        op = Extract(
            operands=[lhs],
            attributes={"indices": ArrayAttr([IntegerAttr(1)]), "location": IntegerAttr(0)},
            result_types=[F32],
        )
        gen["dispatch_to_autogen_serialization"](ctx, op)

        expect(ctx.annotations) == [header(4, 71), 5, 30, 0]

    def rejects_unknown_decoration(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")
        Add = gen["Add"]
        ctx, lhs, rhs = encoding_context()

        op = Add(operands=[lhs, rhs], attributes={"fancy": UnitAttr()}, result_types=[F32])
        with pytest.raises(SerializationError) as exinfo:
            gen["dispatch_to_autogen_serialization"](ctx, op)
        expect("unhandled decoration fancy" in str(exinfo.value)) == True

    def reports_use_before_def(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")
        Add = gen["Add"]
        ctx, lhs, _ = encoding_context()

        op = Add(operands=[lhs, Value(F32)], result_types=[F32])
        with pytest.raises(SerializationError):
            gen["dispatch_to_autogen_serialization"](ctx, op)

        expect(ctx.functions) == []
        expect(len(ctx.diagnostics)) == 1
        expect(ctx.diagnostics[0].message) == "operand 1 has a use before def"

    def fails_on_unresolved_type(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")
        Add = gen["Add"]
        ctx, lhs, rhs = encoding_context()

        op = Add(operands=[lhs, rhs], result_types=[Type("i64")])
        with pytest.raises(SerializationError) as exinfo:
            gen["dispatch_to_autogen_serialization"](ctx, op)
        expect("failed to resolve type i64" in str(exinfo.value)) == True

    def does_not_dispatch_manual_operations(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")
        Load = gen["Load"]
        Placeholder = gen["Placeholder"]
        ctx, lhs, _ = encoding_context()

        with pytest.raises(SerializationError) as exinfo:
            gen["dispatch_to_autogen_serialization"](ctx, Load(operands=[lhs], result_types=[F32]))
        expect("unhandled operation serialization: Load" in str(exinfo.value)) == True

        with pytest.raises(SerializationError) as exinfo:
            gen["dispatch_to_autogen_serialization"](ctx, Placeholder(result_types=[F32]))
        expect("unhandled operation serialization: Placeholder" in str(exinfo.value)) == True


def describe_deserialization():
    def reconstructs_operation(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")
        Add = gen["Add"]
        lhs = Value(F32)
        rhs = Value(F32)
        ctx = decoding_context(lhs, rhs)

        op = gen["dispatch_to_autogen_deserialization"](ctx, 12, [1, 5, 3, 4])

        expect(type(op)) == Add
        expect(op.operands) == [lhs, rhs]
        expect(op.result_types) == [F32]
        expect(op.attributes) == {}
        expect(ctx.get_value(5) is op.result) == True

    def round_trips_every_generated_operation(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")
        serialize = gen["dispatch_to_autogen_serialization"]
        deserialize = gen["dispatch_to_autogen_deserialization"]
        ctx, lhs, rhs = encoding_context()

        ops = [
            gen["Nop"](),
            gen["Add"](operands=[lhs, rhs], result_types=[F32]),
            gen["Call"](operands=[rhs, lhs], attributes={"callee": IntegerAttr(-3)}, result_types=[F32]),
            gen["Extract"](
                operands=[lhs],
                attributes={"indices": ArrayAttr([IntegerAttr(1), IntegerAttr(0)])},
                result_types=[F32],
            ),
            gen["Barrier"](attributes={"scope": IntegerAttr(1), "semantics": IntegerAttr(0x40)}),
            gen["Store"](operands=[lhs, rhs], attributes={"access": IntegerAttr(2)}),
        ]
        words = serialize_operations(ctx, ops, serialize)

        decoded = deserialize_words(decoding_context(lhs, rhs), words, deserialize)
        expect(decoded) == ops

    def merges_decorations(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")
        Add = gen["Add"]
        ctx, lhs, rhs = encoding_context()

        op = Add(
            operands=[lhs, rhs],
            attributes={"binding": IntegerAttr(2), "descriptor_set": IntegerAttr(0), "flat": UnitAttr()},
            result_types=[F32],
        )
        words = serialize_operations(ctx, [op], gen["dispatch_to_autogen_serialization"])

        decoded = deserialize_words(
            decoding_context(lhs, rhs), words, gen["dispatch_to_autogen_deserialization"]
        )
        expect(decoded[0].attributes) == {
            "binding": IntegerAttr(2),
            "descriptor_set": IntegerAttr(0),
            "flat": UnitAttr(),
        }

    def accepts_decorations_after_their_target(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")
        lhs = Value(F32)
        rhs = Value(F32)
        ctx = decoding_context(lhs, rhs)

        words = [header(5, 12), 1, 5, 3, 4, header(4, 71), 5, 33, 9]
        decoded = deserialize_words(ctx, words, gen["dispatch_to_autogen_deserialization"])
        expect(decoded[0].attributes) == {"binding": IntegerAttr(9)}

    def leaves_absent_optional_attribute_unset(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")
        lhs = Value(F32)
        rhs = Value(F32)
        ctx = decoding_context(lhs, rhs)

        op = gen["dispatch_to_autogen_deserialization"](ctx, 62, [3, 4])
        expect(op.attributes) == {}

        op = gen["dispatch_to_autogen_deserialization"](ctx, 62, [3, 4, 1])
        expect(op.attributes) == {"access": IntegerAttr(1)}

    def rejects_extra_words(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")
        ctx = decoding_context(Value(F32), Value(F32))

        with pytest.raises(DeserializationError) as exinfo:
            gen["dispatch_to_autogen_deserialization"](ctx, 12, [1, 5, 3, 4, 9])
        expect(str(exinfo.value)) == (
            "found more operands than expected when deserializing Add, only 4 of 5 processed"
        )

    def rejects_missing_result_words(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")
        ctx = decoding_context(Value(F32), Value(F32))
        deserialize = gen["dispatch_to_autogen_deserialization"]

        with pytest.raises(DeserializationError) as exinfo:
            deserialize(ctx, 12, [])
        expect(str(exinfo.value)) == "expected result type <id> while deserializing Add"

        with pytest.raises(DeserializationError) as exinfo:
            deserialize(ctx, 12, [1])
        expect(str(exinfo.value)) == "expected result <id> while deserializing Add"

    def rejects_unknown_ids(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")
        ctx = decoding_context(Value(F32), Value(F32))
        deserialize = gen["dispatch_to_autogen_deserialization"]

        with pytest.raises(DeserializationError) as exinfo:
            deserialize(ctx, 12, [99, 5, 3, 4])
        expect(str(exinfo.value)) == "unknown type result <id> : 99"

        with pytest.raises(DeserializationError) as exinfo:
            deserialize(ctx, 12, [1, 5, 3, 77])
        expect(str(exinfo.value)) == "unknown result <id> : 77"

    def rejects_invalid_result_ids(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")
        ctx = decoding_context(Value(F32), Value(F32))
        deserialize = gen["dispatch_to_autogen_deserialization"]

        with pytest.raises(DeserializationError) as exinfo:
            deserialize(ctx, 12, [1, 0])
        expect(str(exinfo.value)) == "invalid result <id> : 0"

    def rejects_result_ids_already_in_use(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")
        lhs = Value(F32)
        ctx = decoding_context(lhs, Value(F32))
        deserialize = gen["dispatch_to_autogen_deserialization"]

        with pytest.raises(DeserializationError) as exinfo:
            deserialize(ctx, 81, [1, 1, 3])
        expect(str(exinfo.value)) == "result <id> 1 is already defined"
        expect(ctx.get_value(1)) == None

        with pytest.raises(DeserializationError) as exinfo:
            deserialize(ctx, 12, [1, 3, 3, 4])
        expect(str(exinfo.value)) == "result <id> 3 is already defined"
        expect(ctx.get_value(3) is lhs) == True

        deserialize(ctx, 12, [1, 5, 3, 4])
        with pytest.raises(DeserializationError):
            deserialize(ctx, 12, [1, 5, 3, 4])

    def round_trips_int32_boundaries(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")
        Barrier = gen["Barrier"]

        for value in (-(1 << 31), -1, 0, (1 << 31) - 1):
            op = Barrier(attributes={"scope": IntegerAttr(value), "semantics": IntegerAttr(value)})
            words = serialize_operations(CodecContext(), [op], gen["dispatch_to_autogen_serialization"])
            decoded = deserialize_words(CodecContext(), words, gen["dispatch_to_autogen_deserialization"])
            expect(decoded) == [op]

        op = Barrier(attributes={"scope": IntegerAttr(1 << 31), "semantics": IntegerAttr(0)})
        with pytest.raises(SerializationError):
            gen["dispatch_to_autogen_serialization"](CodecContext(), op)

    def rejects_unhandled_opcodes(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")
        ctx = CodecContext()
        deserialize = gen["dispatch_to_autogen_deserialization"]

        with pytest.raises(DeserializationError) as exinfo:
            deserialize(ctx, 999, [])
        expect(str(exinfo.value)) == "unhandled deserialization of 999"

        with pytest.raises(DeserializationError) as exinfo:
            deserialize(ctx, 61, [1, 5, 3])
        expect(str(exinfo.value)) == "unhandled deserialization of Load"


def describe_manual_operations():
    def use_codecs_registered_on_the_context(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")
        Load = gen["Load"]
        ctx, lhs, _ = encoding_context()

        def serialize_load(ctx, op):
            type_id = ctx.resolve_type(op.loc, op.result.type)
            result_id = ctx.allocate_value_id()
            ctx.bind_value(op.result, result_id)
            ctx.append_instruction(61, [type_id, result_id, ctx.find_value_id(op.operands[0])])

        def deserialize_load(ctx, words):
            op = ctx.create_operation(
                Load, UNKNOWN_LOC, [ctx.get_type(words[0])], [ctx.get_value(words[2])], {}
            )
            ctx.bind_id(words[1], op.result)
            return op

        ctx.custom_serializers[Load] = serialize_load
        load_op = Load(operands=[lhs], result_types=[F32])
        words = serialize_operations(ctx, [load_op], gen["dispatch_to_autogen_serialization"])
        expect(words) == [header(4, 61), 1, 5, 3]

        decode_ctx = decoding_context(lhs, Value(F32))
        decode_ctx.custom_deserializers[61] = deserialize_load
        decoded = deserialize_words(decode_ctx, words, gen["dispatch_to_autogen_deserialization"])
        expect(decoded) == [load_op]



def describe_opcode_table():
    def lists_every_operation_with_an_opcode(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")

        expect([cls.__name__ for cls in gen["OPCODES"]]) == [
            "Nop",
            "Add",
            "Call",
            "Extract",
            "Barrier",
            "Store",
            "Load",
        ]
        expect(gen["get_opcode"](gen["Load"])) == 61
        expect(gen["stringify_opcode"](12)) == "Add"
        expect(gen["stringify_opcode"](1000)) == "1000"

    def records_operation_shape_on_classes(expect):
        gen = gen_code(FILE_DIR + "/ops.spvdef")

        expect(gen["Add"].opcode) == 12
        expect(gen["Add"].num_results) == 1
        expect(gen["Placeholder"].opcode) == None
        expect(gen["Nop"].op_name) == "Nop"
