# ============================================================
# 📍 Tabelas de referência geográfica (Rússia)
# ============================================================
# Chaves SEMPRE normalizadas: minúsculas, "ё" → "е".
# O índice em tempo de execução (GeoReferenceIndex) é estendido
# com cidades/regiões encontradas na base OKB.
# ============================================================

FEDERAL_CITIES = {
    "москва": "Москва",
    "санкт-петербург": "Санкт-Петербург",
    "севастополь": "Севастополь",
}

# ------------------------------------------------------------
# Cidade → região
# ------------------------------------------------------------
CITY_TO_REGION = {
    "москва": "Москва",
    "санкт-петербург": "Санкт-Петербург",
    "севастополь": "Севастополь",
    "зеленоград": "Москва",
    "подольск": "Московская область",
    "химки": "Московская область",
    "балашиха": "Московская область",
    "мытищи": "Московская область",
    "королев": "Московская область",
    "гатчина": "Ленинградская область",
    "выборг": "Ленинградская область",
    "псков": "Псковская область",
    "мурманск": "Мурманская область",
    "петрозаводск": "Республика Карелия",
    "смоленск": "Смоленская область",
    "калининград": "Калининградская область",
    "брянск": "Брянская область",
    "калуга": "Калужская область",
    "тула": "Тульская область",
    "орел": "Орловская область",
    "курск": "Курская область",
    "белгород": "Белгородская область",
    "ростов-на-дону": "Ростовская область",
    "таганрог": "Ростовская область",
    "краснодар": "Краснодарский край",
    "сочи": "Краснодарский край",
    "новороссийск": "Краснодарский край",
    "ставрополь": "Ставропольский край",
    "махачкала": "Республика Дагестан",
    "рязань": "Рязанская область",
    "воронеж": "Воронежская область",
    "волгоград": "Волгоградская область",
    "саратов": "Саратовская область",
    "астрахань": "Астраханская область",
    "казань": "Республика Татарстан",
    "набережные челны": "Республика Татарстан",
    "ижевск": "Удмуртская Республика",
    "саранск": "Республика Мордовия",
    "ульяновск": "Ульяновская область",
    "пенза": "Пензенская область",
    "самара": "Самарская область",
    "тольятти": "Самарская область",
    "уфа": "Республика Башкортостан",
    "челябинск": "Челябинская область",
    "магнитогорск": "Челябинская область",
    "оренбург": "Оренбургская область",
    "нижний новгород": "Нижегородская область",
    "великий новгород": "Новгородская область",
    "киров": "Кировская область",
    "пермь": "Пермский край",
    "екатеринбург": "Свердловская область",
    "тюмень": "Тюменская область",
    "новосибирск": "Новосибирская область",
    "томск": "Томская область",
    "омск": "Омская область",
    "кемерово": "Кемеровская область",
    "новокузнецк": "Кемеровская область",
    "барнаул": "Алтайский край",
    "красноярск": "Красноярский край",
    "иркутск": "Иркутская область",
    "хабаровск": "Хабаровский край",
    "владивосток": "Приморский край",
    "ярославль": "Ярославская область",
    "иваново": "Ивановская область",
    "вологда": "Вологодская область",
    "архангельск": "Архангельская область",
    "тверь": "Тверская область",
    "симферополь": "Республика Крым",
    "ялта": "Республика Крым",
}

# ------------------------------------------------------------
# Apelidos de cidades (grafias comuns em planilhas)
# ------------------------------------------------------------
CITY_ALIASES = {
    "спб": "санкт-петербург",
    "питер": "санкт-петербург",
    "петербург": "санкт-петербург",
    "мск": "москва",
    "екб": "екатеринбург",
    "нн": "нижний новгород",
    "ростов": "ростов-на-дону",
    "н новгород": "нижний новгород",
}

# ------------------------------------------------------------
# Palavra-chave → região padrão
# ------------------------------------------------------------
REGION_KEYWORD_MAP = {
    "московская": "Московская область",
    "подмосковье": "Московская область",
    "ленинградская": "Ленинградская область",
    "краснодарский": "Краснодарский край",
    "кубань": "Краснодарский край",
    "свердловская": "Свердловская область",
    "калининградская": "Калининградская область",
    "крым": "Республика Крым",
    "татарстан": "Республика Татарстан",
    "башкортостан": "Республика Башкортостан",
    "башкирия": "Республика Башкортостан",
    "новосибирская": "Новосибирская область",
    "ростовская": "Ростовская область",
    "нижегородская": "Нижегородская область",
    "новгородская": "Новгородская область",
    "самарская": "Самарская область",
    "челябинская": "Челябинская область",
    "пермский": "Пермский край",
    "красноярский": "Красноярский край",
    "приморский": "Приморский край",
    "хабаровский": "Хабаровский край",
    "тюменская": "Тюменская область",
    "омская": "Омская область",
    "воронежская": "Воронежская область",
    "волгоградская": "Волгоградская область",
    "саратовская": "Саратовская область",
    "орловская": "Орловская область",
    "тульская": "Тульская область",
    "ярославская": "Ярославская область",
    "ставропольский": "Ставропольский край",
    "алтайский": "Алтайский край",
    "иркутская": "Иркутская область",
    "кемеровская": "Кемеровская область",
    "дагестан": "Республика Дагестан",
}

# ------------------------------------------------------------
# Índices postais (6 dígitos). Prefixo de 3 dígitos → (região, cidade)
# cidade None = prefixo cobre a região inteira
# ------------------------------------------------------------
POSTAL_PREFIXES = {
    **{str(p): ("Москва", "Москва") for p in range(101, 130)},
    **{str(p): ("Московская область", None) for p in range(140, 145)},
    **{str(p): ("Санкт-Петербург", "Санкт-Петербург") for p in range(190, 200)},
    "187": ("Ленинградская область", None),
    "188": ("Ленинградская область", None),
    "150": ("Ярославская область", "Ярославль"),
    "153": ("Ивановская область", "Иваново"),
    "160": ("Вологодская область", "Вологда"),
    "163": ("Архангельская область", "Архангельск"),
    "170": ("Тверская область", "Тверь"),
    "173": ("Новгородская область", "Великий Новгород"),
    "180": ("Псковская область", "Псков"),
    "183": ("Мурманская область", "Мурманск"),
    "185": ("Республика Карелия", "Петрозаводск"),
    "214": ("Смоленская область", "Смоленск"),
    "236": ("Калининградская область", "Калининград"),
    "241": ("Брянская область", "Брянск"),
    "248": ("Калужская область", "Калуга"),
    "295": ("Республика Крым", "Симферополь"),
    "299": ("Севастополь", "Севастополь"),
    "300": ("Тульская область", "Тула"),
    "302": ("Орловская область", "Орел"),
    "305": ("Курская область", "Курск"),
    "308": ("Белгородская область", "Белгород"),
    "344": ("Ростовская область", "Ростов-на-Дону"),
    "350": ("Краснодарский край", "Краснодар"),
    "352": ("Краснодарский край", None),
    "353": ("Краснодарский край", None),
    "354": ("Краснодарский край", "Сочи"),
    "355": ("Ставропольский край", "Ставрополь"),
    "367": ("Республика Дагестан", "Махачкала"),
    "390": ("Рязанская область", "Рязань"),
    "394": ("Воронежская область", "Воронеж"),
    "400": ("Волгоградская область", "Волгоград"),
    "410": ("Саратовская область", "Саратов"),
    "414": ("Астраханская область", "Астрахань"),
    "420": ("Республика Татарстан", "Казань"),
    "426": ("Удмуртская Республика", "Ижевск"),
    "430": ("Республика Мордовия", "Саранск"),
    "432": ("Ульяновская область", "Ульяновск"),
    "440": ("Пензенская область", "Пенза"),
    "443": ("Самарская область", "Самара"),
    "445": ("Самарская область", "Тольятти"),
    "450": ("Республика Башкортостан", "Уфа"),
    "454": ("Челябинская область", "Челябинск"),
    "460": ("Оренбургская область", "Оренбург"),
    "603": ("Нижегородская область", "Нижний Новгород"),
    "610": ("Кировская область", "Киров"),
    "614": ("Пермский край", "Пермь"),
    "620": ("Свердловская область", "Екатеринбург"),
    "625": ("Тюменская область", "Тюмень"),
    "630": ("Новосибирская область", "Новосибирск"),
    "634": ("Томская область", "Томск"),
    "644": ("Омская область", "Омск"),
    "650": ("Кемеровская область", "Кемерово"),
    "656": ("Алтайский край", "Барнаул"),
    "660": ("Красноярский край", "Красноярск"),
    "664": ("Иркутская область", "Иркутск"),
    "680": ("Хабаровский край", "Хабаровск"),
    "690": ("Приморский край", "Владивосток"),
}

# Índices exatos conhecidos (agências centrais)
POSTAL_CODES = {
    "101000": ("Москва", "Москва"),
    "190000": ("Санкт-Петербург", "Санкт-Петербург"),
    "420111": ("Республика Татарстан", "Казань"),
    "630099": ("Новосибирская область", "Новосибирск"),
    "620014": ("Свердловская область", "Екатеринбург"),
}
