# Section labels the response parser keys on; keep both sides in sync
_TEMPLATE = (
    "You are an agricultural expert helping a smallholder farmer in India.\n"
    "A photo of a {crop} plant has been uploaded: {image_url}\n\n"
    "Identify the most likely pest or disease affecting this {crop} crop and "
    "answer in plain, simple language using exactly this layout:\n\n"
    "<name of the pest or disease on the first line>\n"
    "Severity: <1, 2 or 3, where 1 = low, 2 = medium, 3 = high>\n"
    "Description: <two or three sentences describing the symptoms and cause>\n"
    "Actions:\n"
    "1. <first recommended action>\n"
    "2. <second recommended action>\n"
    "(add more numbered actions if needed)\n"
    "Scientific name: <scientific name of the pest or pathogen, if known>\n"
    "Type: <fungal, bacterial, viral, insect, deficiency or other, if known>\n"
)


def build_identification_prompt(crop_name: str, image_url: str = "") -> str:
    return _TEMPLATE.format(crop=crop_name.strip(), image_url=image_url or "(not available)")
