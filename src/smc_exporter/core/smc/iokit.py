"""
Read-only access to the AppleSMC kernel service through IOKit.

Only available on macOS. Every other platform raises HardwareError when a
connection is opened, which callers treat like any other hardware failure.
"""
import ctypes
import ctypes.util
import logging
from typing import Dict, Optional, Tuple

from smc_exporter.core.errors import HardwareError
from smc_exporter.core.smc.codec import decode_key, encode_key

logger = logging.getLogger(__name__)

KERN_SUCCESS = 0
KERNEL_INDEX_SMC = 2

SMC_CMD_READ_BYTES = 5
SMC_CMD_READ_INDEX = 8
SMC_CMD_READ_KEYINFO = 9

KEY_COUNT_KEY = "#KEY"


class SMCVersion(ctypes.Structure):
    _fields_ = [
        ("major", ctypes.c_ubyte),
        ("minor", ctypes.c_ubyte),
        ("build", ctypes.c_ubyte),
        ("reserved", ctypes.c_ubyte),
        ("release", ctypes.c_uint16),
    ]


class SMCPLimitData(ctypes.Structure):
    _fields_ = [
        ("version", ctypes.c_uint16),
        ("length", ctypes.c_uint16),
        ("cpuPLimit", ctypes.c_uint32),
        ("gpuPLimit", ctypes.c_uint32),
        ("memPLimit", ctypes.c_uint32),
    ]


class SMCKeyInfo(ctypes.Structure):
    _fields_ = [
        ("dataSize", ctypes.c_uint32),
        ("dataType", ctypes.c_uint32),
        ("dataAttributes", ctypes.c_ubyte),
    ]


class SMCKeyData(ctypes.Structure):
    """Parameter block exchanged with the AppleSMC user client."""
    _fields_ = [
        ("key", ctypes.c_uint32),
        ("vers", SMCVersion),
        ("pLimitData", SMCPLimitData),
        ("keyInfo", SMCKeyInfo),
        ("result", ctypes.c_ubyte),
        ("status", ctypes.c_ubyte),
        ("data8", ctypes.c_ubyte),
        ("data32", ctypes.c_uint32),
        ("bytes", ctypes.c_ubyte * 32),
    ]


_iokit: Optional[ctypes.CDLL] = None
_task_port: Optional[int] = None


def _load_iokit() -> Tuple[ctypes.CDLL, int]:
    """Load IOKit and resolve the current task port once per process."""
    global _iokit, _task_port
    if _iokit is not None and _task_port is not None:
        return _iokit, _task_port

    iokit_path = ctypes.util.find_library("IOKit")
    system_path = ctypes.util.find_library("System")
    if iokit_path is None or system_path is None:
        raise HardwareError("IOKit is not available on this platform")

    try:
        iokit = ctypes.cdll.LoadLibrary(iokit_path)
        libsystem = ctypes.cdll.LoadLibrary(system_path)
        task_port = ctypes.c_uint32.in_dll(libsystem, "mach_task_self_").value
    except (OSError, ValueError) as e:
        raise HardwareError(f"Unable to load IOKit: {e}") from e

    iokit.IOServiceMatching.argtypes = [ctypes.c_char_p]
    iokit.IOServiceMatching.restype = ctypes.c_void_p
    iokit.IOServiceGetMatchingService.argtypes = [ctypes.c_uint32, ctypes.c_void_p]
    iokit.IOServiceGetMatchingService.restype = ctypes.c_uint32
    iokit.IOServiceOpen.argtypes = [
        ctypes.c_uint32, ctypes.c_uint32, ctypes.c_uint32, ctypes.POINTER(ctypes.c_uint32),
    ]
    iokit.IOServiceOpen.restype = ctypes.c_int
    iokit.IOServiceClose.argtypes = [ctypes.c_uint32]
    iokit.IOServiceClose.restype = ctypes.c_int
    iokit.IOObjectRelease.argtypes = [ctypes.c_uint32]
    iokit.IOObjectRelease.restype = ctypes.c_int
    iokit.IOConnectCallStructMethod.argtypes = [
        ctypes.c_uint32, ctypes.c_uint32,
        ctypes.c_void_p, ctypes.c_size_t,
        ctypes.c_void_p, ctypes.POINTER(ctypes.c_size_t),
    ]
    iokit.IOConnectCallStructMethod.restype = ctypes.c_int

    _iokit, _task_port = iokit, task_port
    return iokit, task_port


class SMCConnection:
    """
    A single open connection to the AppleSMC service.

    Not thread-safe; callers serialize access (see SmcGateway).

    Usage:
        with SMCConnection() as conn:
            for index in range(conn.key_count()):
                key = conn.key_at(index)
                data_type, data = conn.read_key(key)
    """

    def __init__(self):
        self._iokit: Optional[ctypes.CDLL] = None
        self._conn: Optional[int] = None
        self._key_info_cache: Dict[int, SMCKeyInfo] = {}

    def open(self) -> None:
        iokit, task_port = _load_iokit()

        service = iokit.IOServiceGetMatchingService(0, iokit.IOServiceMatching(b"AppleSMC"))
        if not service:
            raise HardwareError("No AppleSMC service found")

        conn = ctypes.c_uint32(0)
        result = iokit.IOServiceOpen(service, task_port, 0, ctypes.byref(conn))
        iokit.IOObjectRelease(service)
        if result != KERN_SUCCESS:
            raise HardwareError(f"IOServiceOpen() = {result & 0xffffffff:08x}")

        self._iokit = iokit
        self._conn = conn.value
        logger.debug("AppleSMC connection opened")

    def close(self) -> None:
        if self._conn is None:
            return
        self._iokit.IOServiceClose(self._conn)
        self._conn = None
        self._key_info_cache.clear()
        logger.debug("AppleSMC connection closed")

    def __enter__(self) -> "SMCConnection":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _call(self, request: SMCKeyData) -> SMCKeyData:
        if self._conn is None:
            raise HardwareError("AppleSMC connection is not open")

        response = SMCKeyData()
        response_size = ctypes.c_size_t(ctypes.sizeof(response))
        result = self._iokit.IOConnectCallStructMethod(
            self._conn, KERNEL_INDEX_SMC,
            ctypes.byref(request), ctypes.sizeof(request),
            ctypes.byref(response), ctypes.byref(response_size),
        )
        if result != KERN_SUCCESS:
            raise HardwareError(f"IOConnectCallStructMethod() = {result & 0xffffffff:08x}")
        if response.result != 0:
            raise HardwareError(f"SMC returned error {response.result} for key {decode_key(request.key)!r}")
        return response

    def _key_info(self, key_code: int) -> SMCKeyInfo:
        info = self._key_info_cache.get(key_code)
        if info is None:
            request = SMCKeyData(key=key_code, data8=SMC_CMD_READ_KEYINFO)
            info = self._call(request).keyInfo
            self._key_info_cache[key_code] = info
        return info

    def read_key(self, key: str) -> Tuple[str, bytes]:
        """Read a key, returning its four character data type and payload."""
        key_code = encode_key(key)
        info = self._key_info(key_code)

        request = SMCKeyData(key=key_code, data8=SMC_CMD_READ_BYTES)
        request.keyInfo.dataSize = info.dataSize
        response = self._call(request)

        size = min(info.dataSize, len(response.bytes))
        return decode_key(info.dataType), bytes(response.bytes[:size])

    def key_count(self) -> int:
        _, data = self.read_key(KEY_COUNT_KEY)
        return int.from_bytes(data, "big")

    def key_at(self, index: int) -> str:
        request = SMCKeyData(data8=SMC_CMD_READ_INDEX, data32=index)
        return decode_key(self._call(request).key)
