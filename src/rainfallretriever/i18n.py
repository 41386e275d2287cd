"""Simple two-language (en/es) translation helper."""

_STRINGS: dict[str, dict[str, str]] = {
    "page_title": {
        "en": "Rainfall Data Retriever",
        "es": "Consulta de Datos de Lluvia",
    },
    "subtitle": {
        "en": "Enter coordinates or an address to fetch simulated NOAA Atlas 14 estimates.",
        "es": "Introduzca coordenadas o una dirección para obtener estimaciones simuladas de NOAA Atlas 14.",
    },
    "tab_coords": {
        "en": "Coordinates",
        "es": "Coordenadas",
    },
    "tab_address": {
        "en": "Address",
        "es": "Dirección",
    },
    "label_latitude": {
        "en": "Latitude",
        "es": "Latitud",
    },
    "label_longitude": {
        "en": "Longitude",
        "es": "Longitud",
    },
    "label_address": {
        "en": "U.S. Address",
        "es": "Dirección en EE. UU.",
    },
    "placeholder_address": {
        "en": "e.g., 1600 Amphitheatre Parkway, Mountain View, CA",
        "es": "p. ej., 1600 Amphitheatre Parkway, Mountain View, CA",
    },
    "btn_fetch": {
        "en": "Fetch Rainfall Data",
        "es": "Obtener datos de lluvia",
    },
    "btn_fetching": {
        "en": "Fetching Data...",
        "es": "Obteniendo datos...",
    },
    "btn_download": {
        "en": "Download CSV",
        "es": "Descargar CSV",
    },
    "map_hint": {
        "en": "Click on the map, or move the marker with the edit tool, to set coordinates.",
        "es": "Haga clic en el mapa, o mueva el marcador con la herramienta de edición, para fijar las coordenadas.",
    },
    "loading": {
        "en": "Retrieving precipitation frequency estimates",
        "es": "Obteniendo estimaciones de frecuencia de precipitación",
    },
    "results_title": {
        "en": "Precipitation Frequency Estimates",
        "es": "Estimaciones de Frecuencia de Precipitación",
    },
    "results_caption": {
        "en": "Showing Rainfall {title} ({unit}) for Lat: {lat}, Lon: {lon}",
        "es": "Lluvia: {title} ({unit}) para Lat: {lat}, Lon: {lon}",
    },
    "table_intensity": {
        "en": "Intensity",
        "es": "Intensidad",
    },
    "table_depth": {
        "en": "Depth",
        "es": "Profundidad",
    },
    "info": {
        "en": "Pick a point on the map, type coordinates, or enter an address, then fetch the estimates. All data is simulated for demonstration purposes.",
        "es": "Elija un punto en el mapa, escriba coordenadas o una dirección y obtenga las estimaciones. Todos los datos son simulados con fines de demostración.",
    },
    "error_prefix": {
        "en": "Error:",
        "es": "Error:",
    },
    "error_invalid_coordinates": {
        "en": "Invalid coordinates. Please enter a valid latitude (-90 to 90) and longitude (-180 to 180).",
        "es": "Coordenadas no válidas. Introduzca una latitud válida (-90 a 90) y una longitud válida (-180 a 180).",
    },
    "error_empty_address": {
        "en": "Please enter a U.S. address.",
        "es": "Introduzca una dirección de EE. UU.",
    },
    "error_geocoding": {
        "en": "Failed to find coordinates for the address. Please check the address and try again.",
        "es": "No se encontraron coordenadas para la dirección. Revísela e inténtelo de nuevo.",
    },
    "error_unexpected": {
        "en": "An unexpected error occurred. Please try again later.",
        "es": "Se produjo un error inesperado. Inténtelo de nuevo más tarde.",
    },
    "footer": {
        "en": "Hydro Data Fetcher. All data is simulated for demonstration purposes.",
        "es": "Hydro Data Fetcher. Todos los datos son simulados con fines de demostración.",
    },
}


def t(key: str, lang: str) -> str:
    """Return the translated string for key in lang.

    Falls back to 'en', then to the key itself if not found.
    """
    entry = _STRINGS.get(key)
    if entry is None:
        return key
    return entry.get(lang) or entry.get("en") or key
