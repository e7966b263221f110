"""
IT8951 protocol constants: preambles, command opcodes, registers and
waveform modes.

Register addresses are 16-bit offsets into either the system base or the
display base address space.
"""

# Transaction preambles (first word of every SPI frame)
PREAMBLE_COMMAND = 0x6000
PREAMBLE_WRITE = 0x0000
PREAMBLE_READ = 0x1000

# Commands
CMD_SYS_RUN = 0x0001
CMD_STANDBY = 0x0002
CMD_SLEEP = 0x0003
CMD_READ_REGISTER = 0x0010
CMD_WRITE_REGISTER = 0x0011
CMD_LOAD_IMAGE_AREA = 0x0021
CMD_LOAD_IMAGE_END = 0x0022
CMD_DISPLAY_AREA = 0x0034
CMD_DISPLAY_AREA_BUFFER = 0x0037
CMD_VCOM = 0x0039
CMD_GET_DEVICE_INFO = 0x0302

# Register spaces
SYSTEM_BASE = 0x0000
DISPLAY_BASE = 0x1000
MEMORY_CONV_BASE = 0x0200

REG_I80CPCR = SYSTEM_BASE + 0x04       # I80 packed-mode control
REG_LISAR = MEMORY_CONV_BASE + 0x08    # Load image start address (low, +2 high)
REG_UP1SR = DISPLAY_BASE + 0x138       # Update parameter 1
REG_LUTAFSR = DISPLAY_BASE + 0x224     # Status of all LUT engines (0 = idle)
REG_BGVR = DISPLAY_BASE + 0x250        # 1bpp bitmap color table

# Bit 2 of the UP1SR high word forces 1bpp threshold fill
UP1SR_MONO_BIT = 1 << 2
BGVR_MONO = (0x00 << 8) | 0xF0

# Display refresh (waveform) modes
MODE_INIT = 0   # Full clear, removes ghosting
MODE_DU = 1     # Direct update, fast 1-bit
MODE_GC16 = 2   # 16-level grayscale
MODE_A2 = 6     # Fast 2-level B&W (differs between panels, see Config.mode_a2)

# Load image area parameter fields
ENDIAN_LITTLE = 0
ENDIAN_BIG = 1

ROTATE_0 = 0
ROTATE_90 = 1
ROTATE_180 = 2
ROTATE_270 = 3

ROTATIONS = {0: ROTATE_0, 90: ROTATE_90, 180: ROTATE_180, 270: ROTATE_270}

# Pixel bit depth -> controller pixel format code.
# 1bpp shares code 3 with 8bpp; the 1bpp path is selected by the UP1SR
# bit instead. Kept as the vendor code does it, verify against the manual.
BPP_CODES = {8: 3, 4: 2, 2: 0, 1: 3}

DEVICE_INFO_SIZE = 40
DEVICE_INFO_FORMAT = '>HHHH16s16s'
