# xvutils

A collection of small, self-contained Unix-style tools and building blocks:

- minimal user programs: `cat`, `echo`, `grep`, `wc`, `ls`, `ln`, `mkdir`, `rm`, `kill`
- a tiny shell with pipes, redirection, command lists, background commands and sub-shells
- stress and process exercises (`grind`, `forktest`, `stressfs`, `zombie`)
- an Sv39 three-level page-table model over simulated physical pages, with copy-in/copy-out helpers
- binary layouts for ELF headers and virtio ring structures, and the physical address map of the qemu `virt` machine

No third-party dependencies are needed.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Command-line tools

Every tool is installed with an `xv-` prefix so it never shadows the
system's own commands.

| Command        | What it does                                                  |
|----------------|---------------------------------------------------------------|
| `xv-sh`        | interactive shell; prompt is `$ ` on standard error           |
| `xv-init`      | prints `init: starting sh` and runs the shell, restarting it while standard input is a terminal |
| `xv-cat`       | copy files (or standard input) to standard output             |
| `xv-echo`      | print its arguments separated by spaces                       |
| `xv-grep`      | print lines matching a simple pattern                         |
| `xv-wc`        | count lines, words and bytes                                  |
| `xv-ls`        | list a file or the entries of a directory                     |
| `xv-ln`        | create a hard link: `xv-ln old new`                           |
| `xv-mkdir`     | create directories, stopping at the first failure             |
| `xv-rm`        | remove files or empty directories, stopping at the first failure |
| `xv-kill`      | send a kill signal to each given process id                   |
| `xv-grind`     | run random file-system operations in two parallel workers     |
| `xv-forktest`  | fill a simulated process table, then reap every child         |
| `xv-stressfs`  | five workers writing and reading back their own files at once |
| `xv-zombie`    | start a child that exits while the parent sleeps              |

### grep patterns

`xv-grep` understands only four operators:

- `^` anchors the match at the start of the line
- `$` anchors the match at the end of the line
- `.` matches any single character
- `*` matches zero or more of the preceding character

```
xv-grep '^ab*c$' notes.txt
```

Only newline-terminated lines are reported.

### wc

```
$ xv-wc README.md
<lines> <words> <bytes> README.md
```

With no file arguments it reads standard input and prints an empty name.

### ls

For a file, `xv-ls` prints its name padded to 14 characters, its type
(1 directory, 2 file, 3 other), its inode number and its size. For a
directory it prints such a line for `.`, `..` and every entry in sorted
order.

### The shell

```
$ xv-sh
$ echo hello | wc
$ cat < in.txt > out.txt
$ echo more >> out.txt
$ ls ; echo done
$ (echo a ; echo b) | grep a
$ cd some/dir
```

`cd` is handled by the shell itself; every other command is looked up
among the built-in programs (`cat`, `echo`, `grep`, `kill`, `ln`, `ls`,
`mkdir`, `rm`, `sh`, `wc`). Pipeline stages run one after another, the
output of one becoming the input of the next, and a command ended by `&`
runs to completion before the shell goes on. A command line holds at
most nine words.

### grind, forktest, stressfs, zombie

```
xv-grind [directory] [--rounds N] [--iterations N] [--pause SECONDS]
xv-forktest [slots]
xv-stressfs [directory]
xv-zombie [delay]
```

`xv-grind` works in a temporary directory unless one is given, and runs
forever unless `--rounds` is set. `xv-forktest` uses 64 slots by default;
`xv-stressfs` writes `stressfs0` to `stressfs4` into the current
directory by default.

## Library use

### printf

```python
from xvutils.printf import format_string

format_string("%d items at %p: %s %x", 3, 0x1000, "ok", 255)
```

Only `%d`, `%l`, `%x`, `%p`, `%s`, `%c` and `%%` are understood; any other
`%` sequence is printed as it stands. `fprintf` and `printf` write the
result to a stream or to standard output.

### Page tables

```python
from xvutils.vm import PTE_W, PageTable, PhysicalMemory

memory = PhysicalMemory(0x80000000, 0x80000000 + 64 * 4096)
pt = PageTable(memory)
size = pt.grow(0, 8192, PTE_W)
pt.copyout(0x10, b"hello\0")
assert pt.copyinstr(0x10, 64) == b"hello"
pt.free(size)
```

`kvmmake` builds a direct-mapped kernel table in the same memory.
Misuse that would halt a kernel raises `KernelPanic`; running out of pages
raises `OutOfMemory`; touching an unmapped or forbidden address raises
`BadAddress`.

### Shell parsing

```python
from xvutils.shparse import parse_command, PipeCmd

cmd = parse_command("cat < in | grep x > out\n")
assert isinstance(cmd, PipeCmd)
```

Malformed lines raise `ShellSyntaxError`. `Shell` in `xvutils.shell`
runs such trees against a table of programs and given streams.

### Binary layouts

`xvutils.elf` reads and writes ELF file and program headers
(`ElfHeader`, `ProgramHeader`, `program_headers`); `xvutils.virtio`
packs and unpacks descriptor, ring and block-request structures;
`xvutils.memlayout` gives the physical address map helpers such as
`kstack` and `plic_sclaim`; `xvutils.openflags` maps `OpenFlag` values
onto the host's `os.O_*` flags.

## What it does not do

The package runs on the host's own file system and processes. It does
not boot or emulate a machine, does not build or read file-system
images, and has no user-space heap allocator; the page-table and virtio
modules model data layouts only and drive no device.