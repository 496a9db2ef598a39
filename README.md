# classreader

A pure-Python reader for JVM `.class` files. It has no dependencies
outside the standard library.

It parses:

- the header and class file version
- the constant pool
- access flags
- the class name, superclass and interfaces
- fields, with their constant values
- methods, with their code, exception tables and line number tables
- `throws` clauses
- the `Deprecated` and `SourceFile` attributes

It can also decode method bytecode into instructions.

## Installation

```
pip install classreader
```

## Reading a class

`read_buffer` takes the bytes of a class file. Reading the file from
disk is up to the caller.

```python
from classreader.class_reader import read_buffer

with open("Complex.class", "rb") as handle:
    class_file = read_buffer(handle.read())

print(class_file.name)          # e.g. rjvm/Complex
print(class_file.superclass)    # e.g. java/lang/Object, or None
print(class_file.version)       # e.g. Jdk6
print(class_file.flags)         # e.g. PUBLIC | SUPER
print(class_file.source_file)   # e.g. Complex.java
for method in class_file.methods:
    print(method.name, method.parsed_type_descriptor)
```

`str(class_file)` gives a full listing of the class:

- its constant pool, fields and methods
- for each method's code, the decoded instructions

### Fields

Each entry of `class_file.fields` is a `ClassFileField` with these
members:

- `flags`, a `FieldFlags`
- `name`
- `type_descriptor`, a parsed `FieldType`
- `deprecated`
- `constant_value`, a `FieldConstantValue` with a `kind` and a `value`,
  or `None`

### Methods

Each entry of `class_file.methods` is a `ClassFileMethod` with these
members:

- `flags`, a `MethodFlags`
- `name`
- `type_descriptor`, the raw descriptor text
- `parsed_type_descriptor`
- `attributes`, the raw attributes
- `deprecated`
- `thrown_exceptions`
- `code`, a `ClassFileMethodCode`. It is `None` for native and abstract
  methods.

The helper methods `is_static()`, `is_native()`, `is_void()` and
`returns(field_type)` answer common questions about a method.
`returns` counts boolean, byte, char and short results as int.

### Errors

Malformed data raises a subclass of
`classreader.errors.ClassReaderError`:

- `InvalidClassDataError` for bad data. Examples are a wrong magic
  number, truncated input, unknown flag bits, an unknown constant pool
  tag, or an invalid constant pool index.
- `UnsupportedVersionError` for unknown major versions. Versions from
  45 (JDK 1.1) to 66 (JDK 22) are known.
- `InvalidTypeDescriptorError` for malformed descriptors.

## Constant pool

`class_file.constants` is a `ConstantPool` with 1-based indexes:

- `get(index)` returns the entry at an index, such as `Utf8`, `Integer`
  or `MethodReference`.
- `text_of(index)` follows references and returns plain text, such as
  `java/lang/Object.<init>`.

Both raise `InvalidConstantPoolIndexError` for an index that is out of
range. They raise it too for the unused second slot of a long or a
double.

## Descriptors

```python
from classreader.field_type import parse_field_type
from classreader.method_descriptor import parse_method_descriptor

print(parse_field_type("[I"))                                     # Int[]
descriptor = parse_method_descriptor("(Ljava/lang/String;I)[J")
print(descriptor)                   # (java/lang/String, Int) -> Long[]
print(descriptor.num_arguments())   # 2
```

## Bytecode

```python
from classreader.instruction import parse_instructions

code = class_file.methods[0].code
if code is not None:
    for address, instruction in parse_instructions(code.code):
        print(address, instruction)
```

Each `Instruction` has an `opcode` and a tuple of `operands`. The
operands of jump instructions hold absolute target addresses.
`parse_instruction(code, address)` decodes a single instruction. It
returns the instruction and the address of the next one.

## Lookups

A method's code exposes two tables:

- `ExceptionTable.lookup(pc)` returns the handlers whose range covers
  a `ProgramCounter`, in table order.
- `LineNumberTable.lookup_pc(pc)` returns the `LineNumber` of the
  instruction at a `ProgramCounter`. It raises `LookupError` when the
  counter precedes every entry.

## What it does not do

- There is no command-line tool. The package is a library.
- Some constant pool entry types are not read. These include method
  handles, method types, dynamic constants, modules and packages. A
  class file that contains them is rejected with
  `InvalidClassDataError`.
- Generic signatures, annotations, inner classes and other attributes
  are not decoded. Method and code attributes are kept raw, as
  `Attribute` objects.
- Some instructions are valid bytecode but are not decoded:
  `tableswitch`, `lookupswitch`, `wide`, `goto_w` and `jsr_w`. The
  instruction decoder raises `UnsupportedInstructionError` for them.
- Nothing is written back. Class files can only be read.