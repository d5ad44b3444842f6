"""
Curated metadata for popular Amazon products, keyed by ASIN.

These pages are the ones most often blocked for server-side clients, so
their titles and images are served from this table without any request.
"""
from types import MappingProxyType
from typing import Mapping, Optional

from ..logger import get_logger
from ..models import KnownProduct

logger = get_logger(__name__)


def _table(*products: KnownProduct) -> Mapping[str, KnownProduct]:
    return MappingProxyType({p.id: p for p in products})


KNOWN_PRODUCTS: Mapping[str, KnownProduct] = _table(
    # Fire TV and Echo
    KnownProduct(
        "B0CJKTWTVT",
        "Amazon Fire TV Stick 4K (Última generación), Dispositivo de streaming compatible con "
        "Wi-Fi 6, Dolby Vision, Dolby Atmos y HDR10+",
        "https://m.media-amazon.com/images/I/61FqKNVCixL._AC_SL1500_.jpg",
    ),
    KnownProduct(
        "B0BCGVCY9V",
        "Fire TV Stick | Dispositivo de streaming HD con control por voz Alexa",
        "https://m.media-amazon.com/images/I/51cO8Y2+KtL._AC_SL1000_.jpg",
    ),
    KnownProduct(
        "B09BPCZJ7B",
        "Amazon Fire TV Stick 4K Max, Dispositivo de streaming, Compatible con Wi-Fi 6, "
        "Control por voz Alexa",
        "https://m.media-amazon.com/images/I/41Y5jS-bsjL._AC_SL1000_.jpg",
    ),
    KnownProduct(
        "B085G5BHM9",
        "Echo Dot (4.ª generación) | Altavoz inteligente con Alexa | Antracita",
        "https://m.media-amazon.com/images/I/71JB6hM6Z6L._AC_SL1000_.jpg",
    ),
    KnownProduct(
        "B0BJ7XVCCP",
        "Echo Dot (5.ª generación, modelo de 2022) | Altavoz inteligente con Alexa | Antracita",
        "https://m.media-amazon.com/images/I/61xdkHaj-HL._AC_SL1000_.jpg",
    ),
    # Apple
    KnownProduct(
        "B07PZR3PVB",
        "Apple AirPods (2nd Generation) MV7N2ZM/A - Auriculares (Inalámbrico, Dentro de oído, "
        "Binaural, Intraaural, Blanco)",
        "https://m.media-amazon.com/images/I/71NTi82uBEL._AC_SL1500_.jpg",
    ),
    KnownProduct(
        "B0BDJH3V3Q",
        "Apple AirPods Pro (2.ª generación) con Carcasa MagSafe",
        "https://m.media-amazon.com/images/I/61SUj2aKoEL._AC_SL1500_.jpg",
    ),
    KnownProduct(
        "B0CHX1K2ZC",
        "Apple iPhone 15 Pro Max (256 GB) - Titanio azul",
        "https://m.media-amazon.com/images/I/81TMsn0JwDL._AC_SL1500_.jpg",
    ),
    KnownProduct(
        "B08L5WHFT9",
        "Apple iPhone 12 Pro Max (128 GB) - Grafito",
        "https://m.media-amazon.com/images/I/71IkeW1u1FL._AC_SL1500_.jpg",
    ),
    KnownProduct(
        "B0CHY5WLB7",
        "Apple Watch Series 9 GPS 41mm Caja de Aluminio en Azul Medianoche - Correa Deportiva "
        "Medianoche",
        "https://m.media-amazon.com/images/I/719LaBbothL._AC_SL1500_.jpg",
    ),
    # Kindle
    KnownProduct(
        "B09SWTMW3H",
        "Kindle Paperwhite (16 GB) – Ahora con una pantalla de 6,8\" y luz cálida ajustable, "
        "con publicidad",
        "https://m.media-amazon.com/images/I/514+qrRQ2dL._AC_SL1500_.jpg",
    ),
    KnownProduct(
        "B0B1LC7YPM",
        "Nuevo Kindle (modelo 2022): El más ligero y compacto, ahora con pantalla de alta "
        "resolución de 300 ppp",
        "https://m.media-amazon.com/images/I/61LL2V9m3bL._AC_SL1500_.jpg",
    ),
    # Phones and wearables
    KnownProduct(
        "B0CFVY3742",
        "Samsung Galaxy S24 Ultra, Smartphone, Android, 512GB, Titanio Gris (Versión Española)",
        "https://m.media-amazon.com/images/I/71LbcO5XT-L._AC_SL1500_.jpg",
    ),
    KnownProduct(
        "B09JL6J7F4",
        "KUXIU Reloj Inteligente Hombre Mujer, 1.7'' Smartwatch con Llamadas Bluetooth, 112 Modos "
        "Deportivos, Pulsómetro, Monitor de Sueño, Oxímetro, IP68 Impermeable Reloj Deportivo "
        "para Android iOS",
        "https://m.media-amazon.com/images/I/71MJbf+mMIL._AC_SL1500_.jpg",
    ),
    KnownProduct(
        "B09JQKBQSB",
        "BIAOQINBO Reloj Inteligente Hombre Mujer, 1.85'' Smartwatch con Llamada Bluetooth, 112 "
        "Modos Deportivos, Pulsómetro, Monitor de Sueño, IP68 Impermeable Reloj Deportivo para "
        "Android iOS",
        "https://m.media-amazon.com/images/I/71+D+JkPNDL._AC_SL1500_.jpg",
    ),
    # Consoles
    KnownProduct(
        "B0CHJF5LH6",
        "Sony PlayStation 5 Slim Digital Edition - Consola de sobremesa, Almacenamiento SSD de "
        "1TB, sin disco, Color Blanco",
        "https://m.media-amazon.com/images/I/51cEQQDTR1L._AC_SL1500_.jpg",
    ),
    KnownProduct(
        "B0BBN3WZ66",
        "Xbox Series X - Consola Xbox Series X - Standard Edition",
        "https://m.media-amazon.com/images/I/61-QQsOZIKL._AC_SL1500_.jpg",
    ),
)


def lookup(product_id: Optional[str]) -> Optional[KnownProduct]:
    """Return the curated entry for ``product_id``, if any."""
    if not product_id:
        return None
    product = KNOWN_PRODUCTS.get(product_id.strip().upper())
    if product is not None:
        logger.info("KNOWN product hit: %s", product.id)
    return product
