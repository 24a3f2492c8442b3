"""
Catalogue des blocs par défaut (16 types).
Clés de type en kebab-case ; row/section/tabs acceptent des enfants.
"""
from typing import List

from .base import BlockDefinition, BlockRegistry, PropField, PropOption


def _opts(*pairs) -> List[PropOption]:
    return [PropOption(value=v, label=l) for v, l in pairs]


_ALIGN   = _opts(("left", "Gauche"), ("center", "Centre"), ("right", "Droite"))
_SPACING = _opts(("compact", "Compact"), ("normal", "Normal"), ("relaxed", "Aéré"))
_SIZES   = _opts(("small", "Petit"), ("medium", "Moyen"), ("large", "Grand"))


header_block = BlockDefinition(
    type="header", name="En-tête", description="Titre de la page avec bouton retour",
    category="layout",
    default_props={"titleField": "", "subtitleField": "", "showBackButton": True},
    props_schema=[
        PropField(name="titleField", label="Champ du titre", type="field-select",
                  helper_text="Vide = nom de la connexion"),
        PropField(name="subtitleField", label="Champ du sous-titre", type="field-select"),
        PropField(name="showBackButton", label="Bouton retour", type="boolean", default_value=True),
    ],
)

form_grid_block = BlockDefinition(
    type="form-grid", name="Grille de champs", description="Grille des champs du formulaire",
    category="fields",
    default_props={"columns": 2, "fields": [], "title": "", "showCard": True, "spacing": "normal"},
    props_schema=[
        PropField(name="title", label="Titre de la section", type="string"),
        PropField(name="columns", label="Colonnes", type="select", default_value="2",
                  options=_opts(("1", "1 colonne"), ("2", "2 colonnes"), ("3", "3 colonnes"))),
        PropField(name="fields", label="Champs", type="field-multi-select"),
        PropField(name="showCard", label="Afficher la carte", type="boolean", default_value=True),
        PropField(name="spacing", label="Espacement", type="select", default_value="normal", options=_SPACING),
    ],
)

single_field_block = BlockDefinition(
    type="single-field", name="Champ unique", description="Un seul champ du formulaire",
    category="fields",
    default_props={"fieldName": "", "customLabel": "", "fullWidth": False, "showLabel": True},
    props_schema=[
        PropField(name="fieldName", label="Champ", type="field-select", required=True),
        PropField(name="customLabel", label="Libellé personnalisé", type="string"),
        PropField(name="fullWidth", label="Pleine largeur", type="boolean", default_value=False),
    ],
)

avatar_block = BlockDefinition(
    type="avatar", name="Avatar", description="Image de profil avec nom",
    category="display",
    default_props={"imageField": "", "nameField": "", "statusField": "", "size": "large", "alignment": "center"},
    props_schema=[
        PropField(name="imageField", label="Champ de l'image", type="field-select"),
        PropField(name="nameField", label="Champ du nom", type="field-select"),
        PropField(name="statusField", label="Champ de statut", type="field-select", helper_text="Affiché en badge"),
        PropField(name="size", label="Taille", type="select", default_value="large", options=_SIZES),
        PropField(name="alignment", label="Alignement", type="select", default_value="center", options=_ALIGN),
    ],
)

section_block = BlockDefinition(
    type="section", name="Section", description="Conteneur repliable pour grouper des blocs",
    category="layout",
    default_props={"title": "Section", "collapsible": True, "defaultOpen": True},
    props_schema=[
        PropField(name="title", label="Titre", type="string", required=True, default_value="Section"),
        PropField(name="collapsible", label="Repliable", type="boolean", default_value=True),
        PropField(name="defaultOpen", label="Ouvert par défaut", type="boolean", default_value=True),
    ],
    allow_children=True,
)

divider_block = BlockDefinition(
    type="divider", name="Séparateur", description="Ligne de séparation",
    category="layout",
    default_props={"spacing": "normal", "showLine": True},
    props_schema=[
        PropField(name="spacing", label="Espacement", type="select", default_value="normal", options=_SPACING),
        PropField(name="showLine", label="Afficher la ligne", type="boolean", default_value=True),
    ],
)

save_button_block = BlockDefinition(
    type="save-button", name="Bouton enregistrer", description="Enregistre les modifications",
    category="actions",
    default_props={"label": "Enregistrer", "position": "right", "variant": "default", "fullWidth": False},
    props_schema=[
        PropField(name="label", label="Texte du bouton", type="string", default_value="Enregistrer"),
        PropField(name="position", label="Position", type="select", default_value="right", options=_ALIGN),
        PropField(name="fullWidth", label="Pleine largeur", type="boolean", default_value=False),
    ],
)

info_card_block = BlockDefinition(
    type="info-card", name="Carte d'info", description="Carte affichant la valeur d'un champ",
    category="display",
    default_props={"fieldName": "", "label": "", "showConnectionInfo": False},
    props_schema=[
        PropField(name="showConnectionInfo", label="Infos de la connexion", type="boolean", default_value=False),
        PropField(name="fieldName", label="Champ", type="field-select"),
        PropField(name="label", label="Libellé", type="string"),
    ],
)

text_block = BlockDefinition(
    type="text", name="Texte", description="Texte statique ou issu d'un champ",
    category="display",
    default_props={"textField": "", "staticText": "", "variant": "body", "alignment": "left", "color": "default"},
    props_schema=[
        PropField(name="textField", label="Champ du texte", type="field-select"),
        PropField(name="staticText", label="Texte statique", type="string"),
        PropField(name="variant", label="Style", type="select", default_value="body", options=_opts(
            ("heading1", "Titre 1"), ("heading2", "Titre 2"), ("heading3", "Titre 3"),
            ("body", "Corps"), ("small", "Petit"), ("caption", "Légende"),
        )),
        PropField(name="alignment", label="Alignement", type="select", default_value="left", options=_ALIGN),
        PropField(name="color", label="Couleur", type="select", default_value="default", options=_opts(
            ("default", "Défaut"), ("muted", "Atténué"), ("primary", "Primaire"), ("destructive", "Destructive"),
        )),
    ],
)

image_block = BlockDefinition(
    type="image", name="Image", description="Image issue d'un champ URL",
    category="display",
    default_props={"imageField": "", "altTextField": "", "size": "medium", "alignment": "center",
                   "rounded": "none", "objectFit": "cover"},
    props_schema=[
        PropField(name="imageField", label="Champ de l'image", type="field-select", required=True),
        PropField(name="altTextField", label="Champ du texte alternatif", type="field-select"),
        PropField(name="size", label="Taille", type="select", default_value="medium",
                  options=_SIZES + _opts(("full", "Pleine largeur"))),
        PropField(name="alignment", label="Alignement", type="select", default_value="center", options=_ALIGN),
        PropField(name="rounded", label="Arrondi", type="select", default_value="none", options=_opts(
            ("none", "Aucun"), ("small", "Petit"), ("medium", "Moyen"), ("large", "Grand"), ("full", "Cercle"),
        )),
    ],
)

badge_block = BlockDefinition(
    type="badge", name="Badge", description="Badge / étiquette de statut",
    category="display",
    default_props={"textField": "", "staticText": "", "variant": "default", "alignment": "left"},
    props_schema=[
        PropField(name="textField", label="Champ du texte", type="field-select"),
        PropField(name="staticText", label="Texte statique", type="string"),
        PropField(name="variant", label="Variante", type="select", default_value="default", options=_opts(
            ("default", "Défaut"), ("secondary", "Secondaire"), ("destructive", "Destructive"), ("outline", "Contour"),
        )),
        PropField(name="alignment", label="Alignement", type="select", default_value="left", options=_ALIGN),
    ],
)

stats_block = BlockDefinition(
    type="stats", name="Statistique", description="Valeur numérique avec libellé",
    category="display",
    default_props={"valueField": "", "labelField": "", "staticLabel": "", "format": "number",
                   "size": "medium", "showCard": True, "alignment": "center"},
    props_schema=[
        PropField(name="valueField", label="Champ de la valeur", type="field-select", required=True),
        PropField(name="labelField", label="Champ du libellé", type="field-select"),
        PropField(name="staticLabel", label="Libellé statique", type="string"),
        PropField(name="format", label="Format", type="select", default_value="number", options=_opts(
            ("number", "Nombre"), ("currency", "Monnaie"), ("percentage", "Pourcentage"), ("decimal", "Décimal"),
        )),
        PropField(name="size", label="Taille", type="select", default_value="medium", options=_SIZES),
        PropField(name="showCard", label="Afficher la carte", type="boolean", default_value=True),
    ],
)

link_button_block = BlockDefinition(
    type="link-button", name="Bouton lien", description="Bouton ouvrant un lien",
    category="actions",
    default_props={"urlField": "", "staticUrl": "", "labelField": "", "staticLabel": "Ouvrir le lien",
                   "variant": "default", "size": "default", "alignment": "left",
                   "showIcon": True, "openInNewTab": True},
    props_schema=[
        PropField(name="urlField", label="Champ de l'URL", type="field-select"),
        PropField(name="staticUrl", label="URL statique", type="string"),
        PropField(name="labelField", label="Champ du libellé", type="field-select"),
        PropField(name="staticLabel", label="Libellé statique", type="string", default_value="Ouvrir le lien"),
        PropField(name="variant", label="Variante", type="select", default_value="default", options=_opts(
            ("default", "Défaut"), ("secondary", "Secondaire"), ("outline", "Contour"),
            ("ghost", "Ghost"), ("link", "Lien"),
        )),
        PropField(name="showIcon", label="Afficher l'icône", type="boolean", default_value=True),
        PropField(name="openInNewTab", label="Nouvel onglet", type="boolean", default_value=True),
    ],
)

list_block = BlockDefinition(
    type="list", name="Liste", description="Liste d'éléments",
    category="display",
    default_props={"arrayField": "", "listStyle": "bullet", "alignment": "left", "spacing": "normal"},
    props_schema=[
        PropField(name="arrayField", label="Champ tableau", type="field-select", required=True,
                  helper_text="Tableau ou texte séparé par des virgules"),
        PropField(name="listStyle", label="Style", type="select", default_value="bullet", options=_opts(
            ("bullet", "Puces"), ("numbered", "Numérotée"), ("none", "Sans puces"),
        )),
        PropField(name="spacing", label="Espacement", type="select", default_value="normal", options=_SPACING),
    ],
)

tabs_block = BlockDefinition(
    type="tabs", name="Onglets", description="Organise le contenu en onglets",
    category="layout",
    default_props={
        "tabs": [{"id": "tab-1", "label": "Onglet 1"}, {"id": "tab-2", "label": "Onglet 2"}],
        "defaultTab": "tab-1",
    },
    props_schema=[
        PropField(name="tabs", label="Onglets", type="json"),
        PropField(name="defaultTab", label="Onglet par défaut", type="string"),
    ],
    allow_children=True,
)

row_block = BlockDefinition(
    type="row", name="Ligne / colonnes", description="Conteneur de 1 à 4 colonnes",
    category="layout",
    default_props={"columns": 2, "columnWidths": ["50%", "50%"], "gap": "medium",
                   "verticalAlign": "top", "stackOnMobile": True},
    props_schema=[
        PropField(name="columns", label="Colonnes", type="select", default_value="2", options=_opts(
            ("1", "1 colonne"), ("2", "2 colonnes"), ("3", "3 colonnes"), ("4", "4 colonnes"),
        )),
        PropField(name="gap", label="Espacement", type="select", default_value="medium", options=_opts(
            ("none", "Aucun"), ("small", "Petit"), ("medium", "Moyen"), ("large", "Grand"),
        )),
        PropField(name="verticalAlign", label="Alignement vertical", type="select", default_value="top", options=_opts(
            ("top", "Haut"), ("center", "Centre"), ("bottom", "Bas"), ("stretch", "Étiré"),
        )),
        PropField(name="stackOnMobile", label="Empiler sur mobile", type="boolean", default_value=True),
    ],
    allow_children=True,
    external_name="Columns",
)


DEFAULT_BLOCKS: List[BlockDefinition] = [
    header_block, form_grid_block, single_field_block, avatar_block,
    section_block, divider_block, save_button_block, info_card_block,
    text_block, image_block, badge_block, stats_block,
    link_button_block, list_block, tabs_block, row_block,
]


def register_all_blocks(registry: BlockRegistry) -> BlockRegistry:
    """Vide le registry puis enregistre les 16 blocs par défaut."""
    registry.clear()
    for d in DEFAULT_BLOCKS:
        registry.register(d)
    return registry


def default_registry() -> BlockRegistry:
    return register_all_blocks(BlockRegistry())
