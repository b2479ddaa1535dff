from __future__ import annotations
import ipaddress
from typing import Optional

def is_listening_key(addr: str) -> bool:
    return addr.startswith(":")

def listening_key(port: int) -> str:
    return f":{port}"

def plain_ip(addr: str) -> Optional[str]:
    """'[::ffff:1.2.3.4]' -> '1.2.3.4', '[2001:db8::1]' -> '2001:db8::1'.
    None for listening keys and anything that is not an IP."""
    if not addr or is_listening_key(addr):
        return None
    host = addr.strip("[]")
    if "%" in host:
        host = host.split("%", 1)[0]
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return None
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped:
        return str(ip.ipv4_mapped)
    return str(ip)
